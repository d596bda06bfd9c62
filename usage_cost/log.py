"""Logging configuration for Usage Cost."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Send package logs to stderr through rich."""
    logger = logging.getLogger("usage_cost")
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
    logger.addHandler(handler)

    return logger
