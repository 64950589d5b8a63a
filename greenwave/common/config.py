"""
Configuration management for the greenwave traffic engine.

This module provides centralized configuration loading and validation using Pydantic.
All environment variables are loaded and validated at startup.
"""

import os
from datetime import time
from typing import Optional, List, Union
from pydantic import BaseModel, Field, field_validator, model_validator
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def clock_minutes(value: Union[time, str]) -> int:
    """Minutes after midnight of a ``time`` or "HH:MM" string ("24:00" allowed)."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    try:
        hour_str, minute_str = value.strip().split(":", 1)
        hour, minute = int(hour_str), int(minute_str)
    except (ValueError, AttributeError):
        raise ValueError(f"Clock value must look like 'HH:MM', got {value!r}")

    total = hour * 60 + minute
    if not (0 <= minute < 60) or not (0 <= total <= 24 * 60):
        raise ValueError(f"Clock value out of range: {value!r}")
    return total


class ReportStoreConfig(BaseModel):
    """Traffic report store (PostgREST endpoint) configuration."""

    base_url: Optional[str] = Field(None, description="Report store base URL")
    api_key: Optional[str] = Field(None, description="Report store API key")
    table: str = Field(default="traffic_reports", description="Reports table name")

    # Rate limiting and retry configuration
    requests_per_second: int = Field(
        default=5, description="Rate limit for API requests"
    )
    max_retries: int = Field(default=3, description="Maximum number of retry attempts")
    backoff_factor: float = Field(default=1.0, description="Exponential backoff factor")
    timeout_seconds: int = Field(default=30, description="Request timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        """Require an http(s) URL when a store is configured."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid report store URL: {v}")
        return v.rstrip("/") if v else v


class GridConfig(BaseModel):
    """Retrospective weekly grid configuration."""

    day_start_hour: int = Field(default=5, description="First hour shown in the grid")
    day_end_hour: int = Field(default=22, description="Hour the grid stops at")
    bucket_minutes: int = Field(default=30, description="Bucket width in minutes")
    days: int = Field(default=7, description="Number of calendar days in the grid")

    @model_validator(mode="after")
    def validate_hours(self):
        """Validate the displayed hour range and bucket width."""
        if not (0 <= self.day_start_hour < self.day_end_hour <= 24):
            raise ValueError(
                "Grid hours must satisfy 0 <= day_start_hour < day_end_hour <= 24"
            )
        if self.bucket_minutes <= 0 or (
            60 % self.bucket_minutes and self.bucket_minutes % 60
        ):
            raise ValueError("bucket_minutes must divide an hour or be whole hours")
        if self.days < 1:
            raise ValueError("Grid must cover at least one day")
        return self


class PredictionConfig(BaseModel):
    """Forward-looking prediction configuration."""

    interval_minutes: int = Field(default=5, description="Prediction cadence")
    widen_minutes: int = Field(
        default=5, description="Window widening on each side for fallback tiers"
    )
    horizon_count: int = Field(
        default=12, description="Intervals in the short-term prediction"
    )

    # "Further hours" outlook
    extended_count: int = Field(default=30, description="Extended outlook samples")
    extended_step_minutes: int = Field(
        default=20, description="Spacing of extended outlook samples"
    )
    extended_offset_minutes: int = Field(
        default=60, description="Extended outlook start offset from now"
    )


class GreenWaveConfig(BaseModel):
    """Green wave (typical day) configuration."""

    interval_minutes: int = Field(default=10, description="Green wave cadence")
    lookback_days: int = Field(default=7, description="Days of history to use")
    window_start: str = Field(default="05:00", description="Display window start")
    window_end: str = Field(default="22:00", description="Display window end")

    @field_validator("window_start", "window_end")
    @classmethod
    def validate_clock(cls, v):
        """Validate HH:MM clock strings."""
        clock_minutes(v)
        return v

    @model_validator(mode="after")
    def validate_window(self):
        """Ensure the display window is not empty."""
        if clock_minutes(self.window_start) >= clock_minutes(self.window_end):
            raise ValueError("window_start must be before window_end")
        if (24 * 60) % self.interval_minutes:
            raise ValueError("interval_minutes must divide a day")
        return self


class RefreshConfig(BaseModel):
    """Pipeline refresh configuration."""

    interval_seconds: float = Field(
        default=60.0, description="Seconds between scheduled refreshes"
    )
    history_size: int = Field(
        default=50, description="Number of refresh runs kept in memory"
    )
    current_status_lookbacks: List[int] = Field(
        default=[20, 30, 60],
        description="Widening look-back windows (minutes) for the current status",
    )

    @field_validator("current_status_lookbacks")
    @classmethod
    def validate_lookbacks(cls, v):
        """Look-backs must be positive and widening."""
        if not v or any(m <= 0 for m in v) or v != sorted(v):
            raise ValueError("Look-back windows must be positive and ascending")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format_str: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    enable_structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    report_store: ReportStoreConfig
    grid: GridConfig
    prediction: PredictionConfig
    green_wave: GreenWaveConfig
    refresh: RefreshConfig
    logging: LoggingConfig

    # Local wall clock used for buckets and weekdays
    timezone: str = Field(default="Europe/Warsaw", description="IANA timezone")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")


def _int_list(value: str) -> List[int]:
    try:
        return [int(x.strip()) for x in value.split(",") if x.strip()]
    except ValueError:
        raise ValueError(
            "CURRENT_STATUS_LOOKBACKS must be comma-separated integers: '20,30,60'"
        )


def load_config() -> AppConfig:
    """Load and validate configuration from environment variables."""

    config_dict = {
        "report_store": {
            "base_url": os.getenv("REPORT_STORE_URL"),
            "api_key": os.getenv("REPORT_STORE_API_KEY"),
            "table": os.getenv("REPORT_STORE_TABLE", "traffic_reports"),
            "requests_per_second": int(os.getenv("REQUESTS_PER_SECOND", "5")),
            "max_retries": int(os.getenv("MAX_RETRIES", "3")),
            "backoff_factor": float(os.getenv("BACKOFF_FACTOR", "1.0")),
            "timeout_seconds": int(os.getenv("TIMEOUT_SECONDS", "30")),
        },
        "grid": {
            "day_start_hour": int(os.getenv("GRID_DAY_START_HOUR", "5")),
            "day_end_hour": int(os.getenv("GRID_DAY_END_HOUR", "22")),
            "bucket_minutes": int(os.getenv("GRID_BUCKET_MINUTES", "30")),
            "days": int(os.getenv("GRID_DAYS", "7")),
        },
        "prediction": {
            "interval_minutes": int(os.getenv("PREDICTION_INTERVAL_MINUTES", "5")),
            "widen_minutes": int(os.getenv("PREDICTION_WIDEN_MINUTES", "5")),
            "horizon_count": int(os.getenv("PREDICTION_HORIZON_COUNT", "12")),
            "extended_count": int(os.getenv("EXTENDED_COUNT", "30")),
            "extended_step_minutes": int(os.getenv("EXTENDED_STEP_MINUTES", "20")),
            "extended_offset_minutes": int(
                os.getenv("EXTENDED_OFFSET_MINUTES", "60")
            ),
        },
        "green_wave": {
            "interval_minutes": int(os.getenv("GREEN_WAVE_INTERVAL_MINUTES", "10")),
            "lookback_days": int(os.getenv("GREEN_WAVE_LOOKBACK_DAYS", "7")),
            "window_start": os.getenv("GREEN_WAVE_WINDOW_START", "05:00"),
            "window_end": os.getenv("GREEN_WAVE_WINDOW_END", "22:00"),
        },
        "refresh": {
            "interval_seconds": float(os.getenv("REFRESH_INTERVAL_SECONDS", "60")),
            "history_size": int(os.getenv("REFRESH_HISTORY_SIZE", "50")),
            "current_status_lookbacks": _int_list(
                os.getenv("CURRENT_STATUS_LOOKBACKS", "20,30,60")
            ),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "enable_structured_logging": os.getenv(
                "ENABLE_STRUCTURED_LOGGING", "true"
            ).lower()
            == "true",
        },
        "timezone": os.getenv("TRAFFIC_TIMEZONE", "Europe/Warsaw"),
        "environment": os.getenv("ENVIRONMENT", "development"),
        "debug": os.getenv("DEBUG", "false").lower() == "true",
    }

    return AppConfig(**config_dict)


# Global configuration instance
config = load_config()


def reload_config() -> AppConfig:
    """
    Re-read the environment into the global ``config`` in place.

    Modules hold a reference to ``config`` from import time, so the sections
    are replaced on the existing object rather than rebinding the name.
    """
    fresh = load_config()
    for name in AppConfig.model_fields:
        setattr(config, name, getattr(fresh, name))
    return config
