"""Root pytest configuration."""

import pytest
import structlog

from notify_orchestrator.configuration import get_settings


@pytest.fixture(autouse=True)
def reset_logging_context():
    """Keep structlog context vars from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
