"""Notification dispatch: recipient resolution, preference filtering, quiet hours."""

from .exceptions import DispatchError, PreferenceLookupError, ResolutionError
from .models import DispatchResult
from .preferences import suppression_reason
from .quiet_hours import GateDecision, PreferenceStore, QuietHoursGate
from .resolver import MembershipDirectory, RecipientResolver
from .service import NotificationDispatcher

__all__ = [
    "NotificationDispatcher",
    "DispatchResult",
    "RecipientResolver",
    "MembershipDirectory",
    "QuietHoursGate",
    "GateDecision",
    "PreferenceStore",
    "suppression_reason",
    "DispatchError",
    "ResolutionError",
    "PreferenceLookupError",
]
