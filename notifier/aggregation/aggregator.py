"""Per-user unread counts by UI module.

Every signal (a realtime change or a poller hit) triggers a full reload of the
user's unread notification types rather than an incremental update, so the
counts can never drift from what the store holds.
"""

import threading
from typing import Callable, Dict, Iterable, Optional

from notifier.logging import get_logger
from notifier.persistence.database import get_session
from notifier.persistence.repositories import NotificationRepository
from notifier.polling.poller import NotificationPoller, SessionProvider
from notifier.realtime.channel import RealtimeChannel

from .modules import MODULES, module_for_notification_type

logger = get_logger(__name__, component="aggregator")


def count_by_module(notification_types: Iterable[str]) -> Dict[str, int]:
    """Zero-filled module counts for a list of notification types."""
    counts = {module: 0 for module in MODULES}
    for notification_type in notification_types:
        module = module_for_notification_type(notification_type)
        if module is not None:
            counts[module] += 1
    return counts


class ModuleAggregator:
    """Unread-count badges for one user."""

    def __init__(
        self,
        user_id: str,
        session_provider: SessionProvider = get_session,
        on_update: Optional[Callable[[Dict[str, int]], None]] = None,
    ):
        """
        Args:
            user_id: User whose unread notifications are counted
            session_provider: Context manager factory yielding store sessions
            on_update: Called with the new counts after every successful refresh
        """
        self.user_id = user_id
        self.session_provider = session_provider
        self.on_update = on_update
        self._counts = {module: 0 for module in MODULES}
        self._lock = threading.Lock()
        self._subscription = None
        self._poller: Optional[NotificationPoller] = None

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def refresh(self) -> Dict[str, int]:
        """Reload the user's unread types and recompute every bucket.

        On a store error the previous counts are kept and the error is logged;
        the next signal retries.
        """
        try:
            with self.session_provider() as session:
                types = NotificationRepository(session).list_unread_types(self.user_id)
        except Exception as e:
            logger.warning(
                f"Failed to refresh module counts for {self.user_id}: {e}",
                extra={
                    "event": "aggregator.refresh.failed",
                    "user_id": self.user_id,
                    "error_type": type(e).__name__,
                },
            )
            return self.counts()

        counts = count_by_module(types)
        with self._lock:
            self._counts = counts

        logger.debug(
            f"Module counts refreshed for {self.user_id}",
            extra={"event": "aggregator.refreshed", "user_id": self.user_id, "counts": counts},
        )

        if self.on_update is not None:
            try:
                self.on_update(dict(counts))
            except Exception as e:
                logger.warning(
                    f"on_update callback failed: {e}",
                    extra={"event": "aggregator.callback_failed", "error_type": type(e).__name__},
                )
        return dict(counts)

    def signal(self, *_args) -> None:
        """Something changed for this user; reload. Any payload is ignored."""
        self.refresh()

    def bind(
        self,
        channel: Optional[RealtimeChannel] = None,
        poller: Optional[NotificationPoller] = None,
    ) -> None:
        """Recompute on every realtime change and every poller hit."""
        if channel is not None and self._subscription is None:
            self._subscription = channel.subscribe(self.user_id, self.signal)

        if poller is not None and self._poller is None:
            poller.add_listener(self.signal)
            self._poller = poller

    def close(self) -> None:
        """Release the realtime subscription and detach from the poller."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._poller is not None:
            self._poller.remove_listener(self.signal)
            self._poller = None
