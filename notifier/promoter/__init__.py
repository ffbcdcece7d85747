"""Queue promotion of notifications held by quiet hours."""

from .models import PromotionResult
from .service import DEFAULT_BATCH_SIZE, QueuePromoter

__all__ = [
    "QueuePromoter",
    "PromotionResult",
    "DEFAULT_BATCH_SIZE",
]
