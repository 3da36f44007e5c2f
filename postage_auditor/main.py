"""Main entry point for Postage Auditor."""

from __future__ import annotations

import argparse
import logging
import sys

from postage_auditor.core.config import get_config_dir, get_settings
from postage_auditor.db.repository import Repository
from postage_auditor.db.session import init_database


def setup_exception_handler() -> None:
    """Set up global exception handler for unhandled exceptions."""
    logger = logging.getLogger(__name__)

    def handle_exception(exc_type, exc_value, exc_traceback):
        """Handle uncaught exceptions."""
        if issubclass(exc_type, KeyboardInterrupt):
            # Allow Ctrl+C to exit normally
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging."""
    log_dir = get_config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "auditor.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="postage-auditor", description="eBay postage auditor API server")
    parser.add_argument("--host", help="Bind address (default from settings)")
    parser.add_argument("--port", type=int, help="Port (default from settings)")
    parser.add_argument("--mock", action="store_true", help="Answer eBay calls from mock data")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = parse_args(argv)
    settings = get_settings()
    if args.mock:
        settings.ebay.mock_mode = True

    setup_logging(settings.log_level)
    setup_exception_handler()
    logger = logging.getLogger(__name__)

    logger.info("Starting Postage Auditor")
    logger.info(f"Config dir: {get_config_dir()}")
    logger.info(f"Mock mode: {settings.ebay.mock_mode}")

    if not settings.ebay.user_token and not settings.ebay.mock_mode:
        logger.warning("No eBay user token configured; enrichment calls will fail with 401")

    try:
        init_database()
        Repository().seed_reference_data()
        logger.info("Database initialized")
    except Exception as e:
        logger.exception("Failed to initialize database")
        print(f"Error: Failed to initialize database: {e}", file=sys.stderr)
        return 1

    from postage_auditor.web.server import WebServer

    server = WebServer(settings, host=args.host, port=args.port)
    try:
        server.start(block=True)
    except KeyboardInterrupt:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
