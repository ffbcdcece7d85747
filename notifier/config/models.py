"""Configuration schema models using Pydantic."""

from datetime import time
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from notifier.utils.timestamps import parse_clock_time

from .duration import DurationParseError, parse_duration, validate_duration_range

# Reference cadence for the queue promoter is 5-15 minutes
PROMOTER_MIN_INTERVAL_SECONDS = 60
PROMOTER_MAX_INTERVAL_SECONDS = 3600


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class PromoterConfig(BaseModel):
    """Queue promoter cadence and batch size."""

    interval: str = Field("10m", description="How often queued notifications are promoted")
    batch_size: int = Field(100, ge=1, le=1000, description="Rows promoted per run")

    # Computed field
    interval_seconds: Optional[int] = None

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        try:
            seconds = parse_duration(v)
            validate_duration_range(
                seconds,
                min_seconds=PROMOTER_MIN_INTERVAL_SECONDS,
                max_seconds=PROMOTER_MAX_INTERVAL_SECONDS,
                label="Promoter interval",
            )
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_interval_seconds(self):
        self.interval_seconds = parse_duration(self.interval)
        return self


class PollingConfig(BaseModel):
    """Polling fallback settings."""

    interval_ms: int = Field(
        30000, ge=1000, le=3_600_000, description="Poll interval per user session (milliseconds)"
    )


class DispatchConfig(BaseModel):
    """Recipient resolution and quiet-hours defaults."""

    exclude_actor_from_case_members: bool = Field(
        True, description="Do not notify the user who caused a case event"
    )
    default_timezone: str = Field(
        "UTC", description="Time zone for quiet hours that don't name one"
    )
    default_quiet_hours_end: str = Field(
        "08:00", description="Quiet-hours end used when a preference record omits it"
    )

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    @field_validator("default_quiet_hours_end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        parse_clock_time(v)
        return v.strip()

    @property
    def quiet_hours_end(self) -> time:
        return parse_clock_time(self.default_quiet_hours_end)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the case notifier."""

    promoter: PromoterConfig = Field(default_factory=PromoterConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
