"""Pytest configuration for ModelRelay tests."""

import pytest


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to ensure test isolation."""
    yield
    # After each test, reload settings to reset to defaults
    from modelrelay.config import reload_settings

    reload_settings()


@pytest.fixture
def fast_retries(monkeypatch):
    """Retry without sleeping between attempts."""
    from modelrelay.config import reload_settings

    monkeypatch.setenv("MODELRELAY_RETRY_MIN_WAIT", "0")
    monkeypatch.setenv("MODELRELAY_RETRY_MAX_WAIT", "0")
    monkeypatch.setenv("MODELRELAY_RETRY_MAX_ATTEMPTS", "3")
    return reload_settings()
