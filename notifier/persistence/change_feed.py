"""Row-level change feed for the notification store.

Repositories record every insert and update they make on the session; once the
session commits, ``database.py`` hands the recorded changes to the active
``ChangeFeed``, which fans them out to subscribers filtered by recipient.
Delivery is best effort: subscriber errors are logged and dropped, and while
the feed is disconnected events are discarded without notice.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, DefaultDict, List, Optional

from notifier.domain.models import Notification
from notifier.logging import get_logger

logger = get_logger(__name__, component="change_feed")


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed mutation of one notification row."""

    type: ChangeType
    notification: Notification

    @property
    def recipient_id(self) -> str:
        return self.notification.recipient_id


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle for one registered callback. ``unsubscribe`` is idempotent."""

    def __init__(self, feed: "ChangeFeed", recipient_id: str, callback: ChangeCallback):
        self.feed = feed
        self.recipient_id = recipient_id
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.feed._remove(self)


class ChangeFeed:
    """In-process publish/subscribe of committed notification changes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: DefaultDict[str, List[Subscription]] = defaultdict(list)
        self.connected = True

    def subscribe(self, recipient_id: str, callback: ChangeCallback) -> Subscription:
        """Register ``callback`` for every change to ``recipient_id``'s rows."""
        subscription = Subscription(self, recipient_id, callback)
        with self._lock:
            self._subscriptions[recipient_id].append(subscription)
        return subscription

    def publish(self, change: ChangeEvent) -> int:
        """Deliver ``change`` to matching subscribers.

        Returns:
            Number of callbacks invoked without error
        """
        if not self.connected:
            logger.debug(
                "Change feed disconnected, dropping change",
                extra={"event": "change_feed.dropped", "notification_id": change.notification.id},
            )
            return 0

        with self._lock:
            targets = list(self._subscriptions.get(change.recipient_id, ()))

        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(change)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Change subscriber failed: {e}",
                    extra={
                        "event": "change_feed.callback_failed",
                        "recipient_id": change.recipient_id,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
        return delivered

    def subscriber_count(self, recipient_id: Optional[str] = None) -> int:
        with self._lock:
            if recipient_id is not None:
                return len(self._subscriptions.get(recipient_id, ()))
            return sum(len(subs) for subs in self._subscriptions.values())

    def disconnect(self) -> None:
        """Mark the transport as dropped: subscriptions stay registered but go quiet."""
        self.connected = False

    def reconnect(self) -> None:
        self.connected = True

    def close(self) -> None:
        """Release every subscription."""
        with self._lock:
            subscriptions = [s for subs in self._subscriptions.values() for s in subs]
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.active = False

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.recipient_id)
            if subs is None:
                return
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(subscription.recipient_id, None)
