"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    polling = config_dict.get("polling", {})
    if isinstance(polling, dict):
        interval_ms = polling.get("interval_ms")
        if isinstance(interval_ms, int) and 0 < interval_ms < 5000:
            warning_messages.append(
                f"Short polling.interval_ms ({interval_ms}) multiplies store load by every open session"
            )

    promoter = config_dict.get("promoter", {})
    if isinstance(promoter, dict):
        interval = promoter.get("interval")
        if isinstance(interval, str):
            try:
                seconds = parse_duration(interval)
            except DurationParseError:
                seconds = None
            if seconds is not None and seconds > 15 * 60:
                warning_messages.append(
                    f"promoter.interval ({interval}) delays quiet-hour notifications "
                    "by more than 15 minutes after the window ends"
                )

        batch_size = promoter.get("batch_size")
        if isinstance(batch_size, int) and 0 < batch_size < 10:
            warning_messages.append(
                f"Small promoter.batch_size ({batch_size}) may not drain the queue after busy nights"
            )

    dispatch = config_dict.get("dispatch", {})
    if isinstance(dispatch, dict) and dispatch.get("exclude_actor_from_case_members") is False:
        warning_messages.append(
            "Actors will be notified about their own case changes "
            "(dispatch.exclude_actor_from_case_members is false)"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message as a ``UserWarning``."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
