"""Classification of notification types into UI modules."""

from typing import Optional

MODULES = (
    "Cases",
    "Hearings",
    "Appointments",
    "Tasks",
    "Documents",
    "Clients",
    "Team",
    "Notes",
    "Chat",
)

# First matching prefix wins
_PREFIX_RULES = (
    ("case_", "Cases"),
    ("hearing_", "Hearings"),
    ("appointment_", "Appointments"),
    ("task_", "Tasks"),
    ("document_", "Documents"),
    ("client_", "Clients"),
)


def module_for_notification_type(notification_type: str) -> Optional[str]:
    """
    Map a notification type to its UI module.

    Args:
        notification_type: e.g. ``task_assigned``

    Returns:
        Module name, or None for types no module claims

    Examples:
        >>> module_for_notification_type("hearing_scheduled")
        'Hearings'
        >>> module_for_notification_type("contact_converted")
        'Clients'
        >>> module_for_notification_type("unknown_type") is None
        True
    """
    if not notification_type:
        return None

    for prefix, module in _PREFIX_RULES:
        if notification_type.startswith(prefix):
            return module

    if "contact_" in notification_type:
        return "Clients"
    if notification_type.startswith("team_"):
        return "Team"
    if notification_type.startswith("note_"):
        return "Notes"
    if notification_type.startswith("message_") or "direct_message" in notification_type:
        return "Chat"

    return None
