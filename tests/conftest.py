"""
Shared fixtures for the test suite.
"""

import logging
import logging.handlers

import pytest

from fingerspell.core.events import EventBus
from fingerspell.utils.config import Config


@pytest.fixture(autouse=True)
def reset_singletons():
    """EventBus and Config are process-wide singletons."""
    EventBus().reset()
    Config.reset()
    yield
    EventBus().reset()
    Config.reset()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def isolated_logging():
    """Drop the handlers setup_logging() installs on the root logger."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler or isinstance(
                handler, logging.handlers.RotatingFileHandler):
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)
