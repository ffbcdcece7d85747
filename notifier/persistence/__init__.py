"""Persistence layer for the notification store.

This module provides the public API for store operations including:
- Database initialization and session management
- NotificationRepository for row reads, inserts and state transitions
- The change feed that publishes committed row mutations
- Custom exceptions for error handling

Example usage:
    >>> from notifier.persistence import init_database, get_session, NotificationRepository
    >>>
    >>> init_database("sqlite:///./data/notifications.db")
    >>>
    >>> with get_session() as session:
    ...     repo = NotificationRepository(session)
    ...     unread = repo.list_unread("user-42")
"""

# Database initialization and session management
from .database import (
    close_database,
    get_change_feed,
    get_engine,
    get_session,
    init_database,
)

# Change feed
from .change_feed import ChangeEvent, ChangeFeed, ChangeType, Subscription

# Repository classes
from .repositories import NotificationRepository

# Exceptions
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    DuplicateNotificationError,
    PersistenceError,
    RecordNotFoundError,
)

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "get_change_feed",
    # Change feed
    "ChangeFeed",
    "ChangeEvent",
    "ChangeType",
    "Subscription",
    # Repositories
    "NotificationRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "DuplicateNotificationError",
]
