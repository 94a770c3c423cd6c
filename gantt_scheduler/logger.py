"""Logging configuration for the Gantt application."""
from __future__ import annotations

import logging
from typing import Optional

from .settings import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a console handler to the package logger.

    Safe to call more than once; the handler is only installed the first time.
    """
    logger = logging.getLogger("gantt_scheduler")
    logger.setLevel(level or settings.LOG_LEVEL)
    if not any(getattr(handler, "_gantt_console", False) for handler in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(_FORMAT))
        console_handler._gantt_console = True  # type: ignore[attr-defined]
        logger.addHandler(console_handler)
    return logger
