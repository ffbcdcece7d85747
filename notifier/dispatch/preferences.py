"""Per-recipient preference filtering applied before the quiet-hours gate."""

from typing import Optional

from notifier.domain.models import NotificationEvent, NotificationPreferences, Priority


def suppression_reason(
    event: NotificationEvent, preferences: Optional[NotificationPreferences]
) -> Optional[str]:
    """
    Return why ``event`` must not reach a recipient with ``preferences``.

    Checks, in order: notifications disabled, category disabled, priority below
    the category's filter, event type disabled, muted case, muted client
    (``metadata["client_id"]``), muted user (``metadata["user_id"]``).

    Args:
        event: Event being dispatched
        preferences: Recipient's preferences (None means no restrictions)

    Returns:
        Short reason tag, or None if the recipient should be notified
    """
    if preferences is None:
        return None

    if not preferences.enabled:
        return "disabled"

    category = preferences.categories.get(event.category)
    if category is not None:
        if not category.enabled:
            return "category_disabled"
        if category.priority_filter is not None and not _meets_filter(
            event.priority, category.priority_filter
        ):
            return "below_priority_filter"

    if preferences.event_preferences.get(event.event_type) is False:
        return "event_type_disabled"

    if event.case_id and event.case_id in preferences.muted_cases:
        return "case_muted"

    client_id = event.metadata.get("client_id")
    if client_id and str(client_id) in preferences.muted_clients:
        return "client_muted"

    user_id = event.metadata.get("user_id")
    if user_id and str(user_id) in preferences.muted_users:
        return "user_muted"

    return None


def _meets_filter(priority: Priority, minimum: Priority) -> bool:
    return Priority(priority).rank >= Priority(minimum).rank
