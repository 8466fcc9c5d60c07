"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone

import pytest

from message_store.repository import MessageRepository
from message_store.store import SQLiteMessageStore


@pytest.fixture
def mock_settings():
    """Provide mock settings for testing."""
    from message_store.config import Settings

    return Settings(
        db_path="test-messages.sqlite3",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def store(tmp_path) -> SQLiteMessageStore:
    """Provide an initialized store backed by a temporary database."""
    message_store = SQLiteMessageStore(tmp_path / "messages.sqlite3")
    message_store.initialize()
    return message_store


@pytest.fixture
def read_time() -> datetime:
    """Timestamp the repository clock reports when marking messages read."""
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repo(store, read_time) -> MessageRepository:
    """Provide a repository with a fixed clock."""
    return MessageRepository(store, clock=lambda: read_time)
