#!/usr/bin/env python
"""Main entry point for the Kxin Notes MCP server."""
import argparse
import atexit
import logging
import os
import sys
from pathlib import Path

from kxin_notes.config import STORAGE_LAYOUTS, config
from kxin_notes.observability import configure_logging, metrics
from kxin_notes.server.mcp_server import NotesMcpServer
from kxin_notes.services.note_service import NoteService


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Kxin Notes MCP Server")
    parser.add_argument(
        "--user-data-dir",
        help="Host user data directory; notes are stored under <dir>/<store name>",
        type=str,
        default=os.environ.get("KXIN_NOTES_USER_DATA_DIR")
    )
    parser.add_argument(
        "--dev",
        help="Store notes under <project root>/assets instead of the user data directory",
        action="store_true",
        default=None
    )
    parser.add_argument(
        "--layout",
        help="Physical note layout",
        choices=list(STORAGE_LAYOUTS),
        default=None
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.environ.get("KXIN_NOTES_LOG_LEVEL", "INFO")
    )
    return parser.parse_args(argv)


def update_config(args):
    """Update the global config with command line arguments."""
    if args.user_data_dir:
        config.user_data_dir = Path(args.user_data_dir)
    if args.dev:
        config.dev_mode = True
    if args.layout:
        config.storage_layout = args.layout


def _save_metrics_on_exit():
    """Save metrics to disk on server shutdown."""
    try:
        if metrics.save_metrics():
            logging.getLogger(__name__).info("Metrics saved to disk on shutdown")
    except Exception as e:
        logging.getLogger(__name__).warning(f"Failed to save metrics on shutdown: {e}")


def main(argv=None):
    """Run the Kxin Notes MCP server."""
    args = parse_args(argv)
    update_config(args)

    # Console + persistent file logging with rotation
    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    try:
        log_dir = configure_logging(config.get_log_dir(), level=log_level, console=True)
    except Exception as e:
        # Fall back to basic console logging if file logging fails
        logging.basicConfig(level=log_level)
        logging.getLogger(__name__).warning(f"Failed to configure file logging: {e}")
        log_dir = None

    logger = logging.getLogger(__name__)
    if log_dir:
        logger.info(f"Persistent logging enabled: {log_dir}")

    atexit.register(_save_metrics_on_exit)

    try:
        service = NoteService.from_config(config)
    except Exception as e:
        logger.error(f"Failed to open note store: {e}")
        sys.exit(1)

    try:
        logger.info(f"Starting Kxin Notes MCP server v{config.server_version}")
        server = NotesMcpServer(note_service=service)
        server.run()
    except Exception as e:
        logger.error(f"Error running server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
