"""
Rich logging setup shared by the HTTP server and the CLI.
"""

import asyncio
import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Loggers that follow the configured level; everything else stays at WARNING
PACKAGE_LOGGERS = ["main", "cli", "rich", "engine", "extractors", "processors", "utils"]


class ShutdownFilter(logging.Filter):
    """Filter out shutdown-related log messages"""

    def filter(self, record):
        if record.exc_info and record.exc_info[0] in (KeyboardInterrupt, asyncio.CancelledError):
            return False
        if "CancelledError" in str(record.msg) or "KeyboardInterrupt" in str(record.msg):
            return False
        return True


def configure_logging(console: Optional[Console] = None, level: Optional[str] = None) -> Console:
    """
    Configure logging with a Rich handler and filters for clean output.

    Args:
        console: Console to log to (a new terminal console if None)
        level: Level for package loggers; defaults to the LOG_LEVEL env var, then INFO

    Returns:
        The console logs are written to
    """
    console = console or Console(force_terminal=True)
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=True
    )
    rich_handler.addFilter(ShutdownFilter())

    # Silence everything by default
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[rich_handler], force=True)

    # Allow server startup logs
    for server_logger in ("uvicorn", "uvicorn.error", "fastapi"):
        logging.getLogger(server_logger).setLevel(logging.INFO)

    for module_name in PACKAGE_LOGGERS:
        logging.getLogger(module_name).setLevel(log_level)

    return console
