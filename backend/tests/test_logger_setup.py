"""Tests for the package logging setup."""

from __future__ import annotations

import logging

from gdal_worker.core import logger_setup


def test_configure_logging_attaches_one_handler() -> None:
    logger = logger_setup.configure_logging("INFO")
    logger_setup.configure_logging("DEBUG")

    assert logger.name == "gdal_worker"
    assert logger.level == logging.DEBUG
    assert logger.handlers.count(logger_setup._handler) == 1


def test_configure_logging_reattaches_removed_handler() -> None:
    logger = logger_setup.configure_logging()
    logger.removeHandler(logger_setup._handler)

    logger_setup.configure_logging()

    assert logger.handlers.count(logger_setup._handler) == 1
