"""Realtime delivery: per-recipient push of committed store changes.

Best effort by design. There is no retry, buffering or ordering here; if the
underlying feed drops or is closed, subscribers simply stop hearing about
changes and the polling fallback picks up the slack.
"""

import threading
from typing import Callable, List, Optional

from notifier.logging import get_logger
from notifier.persistence.change_feed import ChangeEvent, ChangeFeed, Subscription
from notifier.persistence.database import get_change_feed

logger = get_logger(__name__, component="realtime")


class RealtimeChannel:
    """Subscribe callbacks to inserts and updates of one recipient's rows."""

    def __init__(self, feed: Optional[ChangeFeed] = None):
        """
        Args:
            feed: Change feed to subscribe to (defaults to the database's feed)
        """
        self.feed = feed if feed is not None else get_change_feed()
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(self, recipient_id: str, callback: Callable[[ChangeEvent], None]) -> Subscription:
        """
        Invoke ``callback`` on every committed insert or update for ``recipient_id``.

        Returns:
            Subscription whose ``unsubscribe()`` releases it (idempotent)
        """

        def deliver(change: ChangeEvent) -> None:
            try:
                callback(change)
            except Exception as e:
                logger.warning(
                    f"Realtime callback failed for {recipient_id}: {e}",
                    extra={
                        "event": "realtime.callback_failed",
                        "recipient_id": recipient_id,
                        "error_type": type(e).__name__,
                    },
                )

        subscription = self.feed.subscribe(recipient_id, deliver)
        with self._lock:
            self._subscriptions.append(subscription)

        logger.debug(
            f"Realtime subscription opened for {recipient_id}",
            extra={"event": "realtime.subscribed", "recipient_id": recipient_id},
        )
        return subscription

    def active_subscriptions(self, recipient_id: Optional[str] = None) -> int:
        """Number of live subscriptions opened through this channel."""
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s.active]
            return sum(
                1 for s in self._subscriptions
                if recipient_id is None or s.recipient_id == recipient_id
            )

    def close(self) -> None:
        """Release every subscription opened through this channel."""
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()
        logger.debug(
            "Realtime channel closed",
            extra={"event": "realtime.closed", "released": len(subscriptions)},
        )
