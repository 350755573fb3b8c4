"""Logging setup for command-line entry points.

Library modules only create loggers with logging.getLogger(__name__); the CLI
calls configure_logging() once so records render through rich.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"
QUIET_LOGGERS = ("urllib3", "PIL")


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """
    Route log records through a RichHandler.

    Args:
        verbose: Log at DEBUG instead of WARNING
        console: Console to render on, so logs and progress output share a terminal
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=console, show_path=verbose, rich_tracebacks=True, markup=False)

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="[%X]", handlers=[handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
