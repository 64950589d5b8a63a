"""
Common utilities for the greenwave traffic engine.

This package provides shared configuration, logging and timezone utilities
used across all engine components.
"""

from .config import config, AppConfig, load_config, reload_config, clock_minutes
from .logging import (
    logger,
    get_logger,
    setup_logging,
    TimedLogger,
    log_api_request,
    log_data_processing,
    log_status_vote,
    log_refresh_run,
)
from .timezone import resolve_timezone, to_local, local_now, local_moment, minute_of_day

__all__ = [
    "config",
    "AppConfig",
    "load_config",
    "reload_config",
    "clock_minutes",
    "logger",
    "get_logger",
    "setup_logging",
    "TimedLogger",
    "log_api_request",
    "log_data_processing",
    "log_status_vote",
    "log_refresh_run",
    "resolve_timezone",
    "to_local",
    "local_now",
    "local_moment",
    "minute_of_day",
]
