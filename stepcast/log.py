"""
Logging setup for the stepcast logger hierarchy.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "stepcast"


def configure_logging(debug: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Route stepcast log records through rich.

    Item-level reporting errors are only logged at debug level, so they
    become visible with debug=True.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=debug,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)

    return logger
