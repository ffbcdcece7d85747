"""Utility functions for hashing and time handling."""

from .hashing import compute_dedup_key, hash_string
from .timestamps import (
    ensure_utc,
    from_storage,
    parse_clock_time,
    to_storage,
    utc_now,
)

__all__ = [
    # Hashing
    "compute_dedup_key",
    "hash_string",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "to_storage",
    "from_storage",
    "parse_clock_time",
]
