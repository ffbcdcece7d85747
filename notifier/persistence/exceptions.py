"""Persistence layer exceptions.

All store failures inherit from PersistenceError so that the promoter and the
poller can treat them uniformly as transient, retry-next-tick errors.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL format
    - Database file not accessible
    - Store used before ``init_database``
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a required notification row does not exist.

    Optional lookups return None instead of raising this.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a database constraint is violated."""

    pass


class DuplicateNotificationError(DataIntegrityError):
    """Raised when a row for the same (event, recipient) pair already exists.

    Attributes:
        dedup_key: Uniqueness key that collided
    """

    def __init__(self, message: str, dedup_key: str):
        super().__init__(message)
        self.dedup_key = dedup_key
