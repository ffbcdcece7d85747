"""Realtime delivery channel built on the store's change feed."""

from .channel import RealtimeChannel

__all__ = [
    "RealtimeChannel",
]
