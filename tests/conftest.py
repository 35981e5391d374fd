"""Shared fixtures."""

import pytest
import structlog

from sessionscope import logging_config


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any structlog configuration a test (or the CLI) applied."""
    yield
    structlog.reset_defaults()
    logging_config._configured = False
