import pytest
from app.core import config

_OVERRIDABLE = (
    "DEFAULT_PROXY",
    "DEFAULT_RATE_LIMIT",
    "REQUEST_TIMEOUT",
    "USER_AGENT",
    "DISCONNECT_POLL_INTERVAL",
)

@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment with predictable settings"""
    # Store original values
    original = {name: getattr(config.settings, name) for name in _OVERRIDABLE}

    # Tests must never go through a proxy from the developer's environment
    config.settings.DEFAULT_PROXY = None
    config.settings.DEFAULT_RATE_LIMIT = 5
    config.settings.REQUEST_TIMEOUT = 5.0
    config.settings.USER_AGENT = config.DEFAULT_USER_AGENT

    yield

    # Restore original values
    for name, value in original.items():
        setattr(config.settings, name, value)
