# main.py

"""Entry point for wholesale_finder (HTTP API or headless CLI)."""

import argparse
import asyncio
import logging
import sys

from wholesale_finder.config.logging_config import setup_logging
from wholesale_finder.config.settings import Settings

logger = logging.getLogger("wholesale_finder.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    sites = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="wholesale_finder",
        description="Wholesale marketplace price comparison in KRW.",
        epilog=f"Supported sites: {sites}",
    )
    parser.add_argument(
        "keyword",
        nargs="?",
        default=None,
        help="Search keyword (Korean or English).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--vpn",
        action="store_true",
        default=False,
        help="Use the VPN request profile when a VPN is detected.",
    )
    parser.add_argument(
        "--analyze",
        default=None,
        metavar="URL",
        help="Analyze one product URL and list cheaper alternatives.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on all marketplaces.",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Start the HTTP API.",
    )
    parser.add_argument("--host", default=Settings.API_HOST)
    parser.add_argument("--port", type=int, default=Settings.API_PORT)
    return parser


def main() -> None:
    """Route to the API server, a health check, analysis or a search."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        console_level=logging.INFO if args.serve else logging.WARNING
    )
    logger.info("wholesale_finder starting, log file: %s", log_file)

    from wholesale_finder.cli import runner

    if args.serve:
        runner.serve(args.host, args.port)
        return
    if args.health:
        exit_code = asyncio.run(runner.run_health_check())
    elif args.analyze:
        exit_code = asyncio.run(
            runner.cli_analyze(args.analyze, args.output_format)
        )
    elif args.keyword is not None:
        exit_code = asyncio.run(
            runner.cli_search(args.keyword, args.output_format, args.vpn)
        )
    else:
        parser.print_help()
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
