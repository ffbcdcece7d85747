"""Structured logging helpers shared by every pipeline component."""

import logging
from typing import Optional


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its ``component`` field with per-call extras."""

    def process(self, msg, kwargs):
        # Per-call extras take precedence over the adapter defaults
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Get a logger, optionally tagging every record with ``component``.

    Example:
        >>> logger = get_logger(__name__, component="promoter")
        >>> logger.info("Batch promoted", extra={"event": "promoter.run.completed"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
