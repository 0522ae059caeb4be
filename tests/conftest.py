"""Shared test fixtures."""

import logging

import pytest
from web_markdown.logging_config import LOGGER_NAME


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo logger changes made by setup_logging() calls inside a test."""
    logger = logging.getLogger(LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:], logger.level, logger.propagate = saved
