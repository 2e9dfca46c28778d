# wholesale_finder/config/logging_config.py

"""Per-run timestamped logging for wholesale_finder.

Every launch writes ``logs/run_YYYYMMDD_HHMMSS.log`` at DEBUG.  The
console only echoes what the launch mode needs: warnings for one-shot
CLI searches, per-search INFO summaries when the HTTP API is serving.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from wholesale_finder.config.settings import Settings

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)
_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PROJECT_LOGGER = "wholesale_finder"


def _run_log_path(logs_dir: Path) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir / f"run_{datetime.now():%Y%m%d_%H%M%S}.log"


def _handler(
    handler: logging.Handler, level: int, fmt: str
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def setup_logging(console_level: int = logging.WARNING) -> Path:
    """Attach the run-file and console handlers to the project logger.

    Args:
        console_level: Minimum level echoed to stderr.  ``main`` passes
            ``logging.INFO`` for ``--serve``.

    Returns:
        Path of this run's log file.
    """
    log_file = _run_log_path(Settings.LOGS_DIR)

    project_logger = logging.getLogger(PROJECT_LOGGER)
    project_logger.setLevel(logging.DEBUG)

    # Repeated calls keep the first run's handlers.
    if project_logger.handlers:
        return log_file

    project_logger.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.DEBUG,
            _DETAILED_FORMAT,
        )
    )
    project_logger.addHandler(
        _handler(logging.StreamHandler(sys.stderr), console_level, _CONSOLE_FORMAT)
    )
    project_logger.info("Logging initialised, log file: %s", log_file)
    return log_file
