"""Logging setup for the worker.

All modules log through ``logging.getLogger(__name__)``; this module only
attaches a stream handler to the package logger once at startup.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the gdal_worker logger.

    Calling it again only updates the level, so building the app several
    times (as the tests do) never duplicates log lines.

    Args:
        level: Logging level name, e.g. "DEBUG" or "INFO".

    Returns:
        The configured package logger.
    """
    global _handler
    logger = logging.getLogger("gdal_worker")
    logger.setLevel(level.upper())
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if _handler not in logger.handlers:
        logger.addHandler(_handler)
    return logger
