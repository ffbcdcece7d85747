"""Context propagation for structured logging.

Fields pushed here are injected into every log record emitted inside the scope
by ``ContextualFilter``. The store is a ``ContextVar``, so each thread (every
APScheduler worker, every poller check) sees its own context.
"""

from contextlib import ContextDecorator
from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently in scope."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge ``kwargs`` into the current context.

    Returns:
        Token to hand to ``pop_log_context`` to restore the previous state

    Example:
        >>> token = push_log_context(user_id="u-42", event_type="case_assigned")
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the context saved in ``token``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field (tests only)."""
    LogContextVar.set({})


class log_context(ContextDecorator):
    """Scoped logging context, usable as ``with`` block or decorator.

    Example:
        >>> with log_context(promotion_id="3f9c"):
        ...     logger.info("Promoting batch")
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
