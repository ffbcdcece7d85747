"""Configuration management module for the case notifier."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config
from .models import (
    AppConfig,
    DispatchConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    PollingConfig,
    PromoterConfig,
)

__all__ = [
    # Main loader functions
    "load_config",
    "load_environment_config",
    "parse_duration",
    # Configuration models
    "AppConfig",
    "PromoterConfig",
    "PollingConfig",
    "DispatchConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
    "DurationParseError",
]
