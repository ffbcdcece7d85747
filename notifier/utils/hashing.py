"""Hashing utilities for notification deduplication keys."""

import hashlib
from typing import Optional


def hash_string(value: str) -> str:
    """SHA-256 hex digest of a UTF-8 string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def compute_dedup_key(
    event_type: str,
    reference_id: Optional[str],
    recipient_id: str,
    occurrence: str = "",
) -> str:
    """Compute the uniqueness key for one (event, recipient) pair.

    The key is a SHA256 hash of
    ``event_type:reference_id:recipient_id:occurrence``. It is stored in a
    UNIQUE column so a retried dispatch of the same event can never fan out to
    the same user twice. ``occurrence`` identifies the event itself (its
    ``event_id``, or its origination instant), so a second event about the
    same entity, or a second reference-less event of the same type, gets a
    key of its own.

    Args:
        event_type: Notification type tag (e.g. ``case_assigned``)
        reference_id: Business entity the notification is about
        recipient_id: Resolved recipient user ID
        occurrence: Identity of the originating event

    Returns:
        Hexadecimal SHA256 digest (64 characters)
    """
    event_type = event_type.strip().lower()
    reference = (reference_id or "").strip()
    recipient = recipient_id.strip()

    return hash_string(f"{event_type}:{reference}:{recipient}:{occurrence.strip()}")
