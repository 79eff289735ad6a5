"""Logging configuration for twig."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance under the twig namespace."""
    if name == "twig" or name.startswith("twig."):
        return logging.getLogger(name)
    return logging.getLogger(f"twig.{name}")


def setup_logging(level: str = "WARNING", console: Optional[Console] = None) -> None:
    """Configure logging for twig.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        console: Console to log to, defaults to a stderr console
    """
    logger = logging.getLogger("twig")
    logger.setLevel(getattr(logging, level.upper()))

    # Repeated calls (e.g. from tests invoking the CLI) replace the handler
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(getattr(logging, level.upper()))
    logger.addHandler(console_handler)

    # Don't propagate to root logger
    logger.propagate = False
