"""Unread-count aggregation by UI module."""

from .aggregator import ModuleAggregator, count_by_module
from .modules import MODULES, module_for_notification_type

__all__ = [
    "ModuleAggregator",
    "count_by_module",
    "module_for_notification_type",
    "MODULES",
]
