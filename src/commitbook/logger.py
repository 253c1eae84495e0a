"""Logging helpers backed by rich console output.

Usage:
    from commitbook.logger import get_logger

    logger = get_logger(__name__)
    logger.warning("No STEP.md found for %s", commit_hash)
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Return a logger with a rich handler attached once.

    Args:
        name: Logger name, usually ``__name__``.
        level: Explicit level name. Defaults to ``LOG_LEVEL`` or ``INFO``.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    logger.addHandler(_rich_handler())
    # Keep propagation on so pytest's caplog sees records.
    logger.propagate = True
    return logger
