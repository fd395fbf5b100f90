"""Shared test fixtures for ctxlog tests."""

import pytest

from ctxlog import Logger, ObserverHandler, context_handler, set_default_logger
from ctxlog.testing import backup_default_logger


@pytest.fixture
def restore_default_logger():
    """Back up the default logger and restore it after the test."""
    with backup_default_logger() as backup:
        yield backup


@pytest.fixture
def records():
    """List receiving every record of the ``collecting_logger`` fixture."""
    return []


@pytest.fixture
def collecting_logger(records, restore_default_logger):
    """Context-aware default logger pushing every record onto ``records``."""
    logger = Logger(context_handler(ObserverHandler(records.append)))
    set_default_logger(logger)
    return logger
