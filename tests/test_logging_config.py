# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import main
from wholesale_finder.config.logging_config import setup_logging


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Clean up the wholesale_finder logger before each test."""
        root_logger = logging.getLogger("wholesale_finder")
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path that exists on disk."""
        log_path = setup_logging()
        self.assertTrue(log_path.exists())

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging()
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_file_and_console_levels(self) -> None:
        """File handler logs DEBUG, console handler only WARNING."""
        setup_logging()
        root_logger = logging.getLogger("wholesale_finder")
        file_handlers = [
            h for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        stream_handlers = [
            h for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(file_handlers[0].level, logging.DEBUG)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_repeated_calls_no_duplicate_handlers(self) -> None:
        """Calling setup_logging twice does not duplicate handlers."""
        setup_logging()
        root_logger = logging.getLogger("wholesale_finder")
        count_before = len(root_logger.handlers)
        setup_logging()
        self.assertEqual(count_before, len(root_logger.handlers))

    def test_child_loggers_propagate_to_run_file(self) -> None:
        """Records from a site logger end up in the run log."""
        log_path = setup_logging()
        logging.getLogger("wholesale_finder.dhgate").info(
            "[dhgate] probe message"
        )
        for handler in logging.getLogger("wholesale_finder").handlers:
            handler.flush()
        self.assertIn("[dhgate] probe message", log_path.read_text("utf-8"))

    def test_log_file_inside_logs_dir(self) -> None:
        log_path = setup_logging()
        self.assertEqual(log_path.parent.name, "logs")


    def test_console_level_override(self) -> None:
        setup_logging(console_level=logging.INFO)
        root_logger = logging.getLogger("wholesale_finder")
        stream_handlers = [
            h for h in root_logger.handlers
            if not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(stream_handlers[0].level, logging.INFO)


class TestMainLogging(unittest.TestCase):
    """The launch mode picks the console level."""

    def _run_main(self, argv: list[str]) -> MagicMock:
        health = AsyncMock(return_value=0)
        with patch("sys.argv", ["main.py", *argv]):
            with patch("main.setup_logging") as mock_setup:
                mock_setup.return_value = Path("logs/run_test.log")
                with patch("wholesale_finder.cli.runner.serve"):
                    with patch(
                        "wholesale_finder.cli.runner.run_health_check", health
                    ):
                        try:
                            main.main()
                        except SystemExit:
                            pass
        return mock_setup

    def test_serve_echoes_info(self) -> None:
        mock_setup = self._run_main(["--serve"])
        mock_setup.assert_called_once_with(console_level=logging.INFO)

    def test_cli_echoes_warnings_only(self) -> None:
        mock_setup = self._run_main(["--health"])
        mock_setup.assert_called_once_with(console_level=logging.WARNING)


if __name__ == "__main__":
    unittest.main()
