"""Logging setup using Rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "waveform_session"

console = Console(stderr=True)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""
    if not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Route package log records to a timestamped Rich console handler."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console,
            show_path=False,
            log_time_format="[%H:%M:%S]",
            markup=False,
        )
        logger.addHandler(handler)
    logger.propagate = False
    return logger
