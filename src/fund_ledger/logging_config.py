"""
Logging setup for the fund ledger.

Modules log through `logging.getLogger(__name__)`; only the entry point
decides where records go.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "fund_ledger"


def setup_logging(level: str = "WARNING", console: Console | None = None) -> logging.Logger:
    """
    Route the package's log records to a rich handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console: Console to write to, stderr by default

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger
