"""
greenwave: temporal aggregation and prediction engine for crowdsourced traffic reports.

This package provides:
- Common utilities (config, logging, timezone resolution)
- Report model, timestamp normalization and report store client
- Weekly grid aggregation, weekday-matched prediction, range compression
  and display helpers (green wave, next slot per status)
- In-memory refresh run tracking
- Periodic and event-driven pipeline refresh
"""

# Re-export key components for convenience
from .common import config, logger, get_logger
from .reports import (
    Report,
    StatusKind,
    DirectionKind,
    NEUTRAL,
    TimestampParseError,
    parse_timestamp,
    load_reports,
    create_report_store_client,
)
from .transform import (
    aggregate_weekly_grid,
    lookup_grid_status,
    predict_intervals,
    compress_to_ranges,
    clip_ranges_to_window,
    find_next_slot_per_status,
    green_wave_ranges,
)
from .refresh import TrafficPipeline, RefreshScheduler, ReportEventBus

__version__ = "1.0.0"

__all__ = [
    # Configuration and logging
    "config",
    "logger",
    "get_logger",
    # Reports
    "Report",
    "StatusKind",
    "DirectionKind",
    "NEUTRAL",
    "TimestampParseError",
    "parse_timestamp",
    "load_reports",
    "create_report_store_client",
    # Engine
    "aggregate_weekly_grid",
    "lookup_grid_status",
    "predict_intervals",
    "compress_to_ranges",
    "clip_ranges_to_window",
    "find_next_slot_per_status",
    "green_wave_ranges",
    # Refresh
    "TrafficPipeline",
    "RefreshScheduler",
    "ReportEventBus",
]
