"""Dispatch layer exceptions."""


class DispatchError(Exception):
    """Base exception for dispatch errors surfaced to the event producer."""

    pass


class ResolutionError(DispatchError):
    """Raised when an event's recipients cannot be resolved.

    Examples:
    - ``single``/``custom`` strategy without recipient IDs
    - ``single`` strategy with more than one recipient
    - ``team`` strategy without ``firm_id``
    - Membership directory failure

    Nothing has been written when this is raised.
    """

    def __init__(self, message: str, strategy: str = ""):
        super().__init__(message)
        self.strategy = strategy


class PreferenceLookupError(Exception):
    """Raised by preference stores when a user's settings cannot be read.

    The dispatcher never lets this escape: a failed lookup means the
    notification is delivered immediately and unfiltered.
    """

    def __init__(self, message: str, user_id: str = ""):
        super().__init__(message)
        self.user_id = user_id
