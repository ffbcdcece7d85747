"""Shared pytest fixtures."""

import pytest

from notifier.logging.context import clear_log_context
from notifier.persistence import close_database, get_change_feed, init_database


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite store, shared by every thread in the test."""
    init_database(f"sqlite:///{tmp_path / 'notifications.db'}")
    yield
    close_database()


@pytest.fixture
def change_feed(database):
    return get_change_feed()


@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Valid environment for configuration loading."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'env.db'}")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture(autouse=True)
def reset_log_context():
    clear_log_context()
    yield
    clear_log_context()
