"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for relay settings, the connection
manager and the FastAPI application.
"""

import os

import pytest

# Keep test runs independent of the developer's environment
os.environ.setdefault("LOG_FILE_PATH", "logs/test_relay_errors.log")


@pytest.fixture
def make_settings():
    """
    Provides a factory for Settings with overrides.

    Returns:
        Callable[..., Settings]: Builds Settings from keyword overrides.
    """
    from ws_relay.settings import Settings

    def _make(**overrides):
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings):
    """Default relay settings (broadcast to all, raw envelope)."""
    return make_settings()


@pytest.fixture
def make_manager():
    """
    Provides a factory for ConnectionManager instances.

    Returns:
        Callable[..., ConnectionManager]: Builds a manager for a policy.
    """
    from ws_relay.managers.connection_manager import ConnectionManager

    def _make(policy="all", **kwargs):
        return ConnectionManager(policy=policy, **kwargs)

    return _make


@pytest.fixture
def make_app():
    """
    Provides a factory building the relay application from settings.

    Returns:
        Callable[[Settings], FastAPI]: Application factory.
    """
    from ws_relay import application

    return application
