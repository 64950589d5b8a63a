"""
Traffic report model and report store access for the greenwave engine.

This package provides the report data model, timestamp normalization and the
client used to fetch reports from the report store.
"""

from .timestamps import TimestampParseError, normalize_timestamp, parse_timestamp
from .models import (
    Report,
    StatusKind,
    DirectionKind,
    Neutral,
    NEUTRAL,
    AggregateStatus,
    STATUS_PRIORITY,
    load_reports,
)
from .store_client import ReportStoreClient, create_report_store_client

__all__ = [
    # Timestamps
    "TimestampParseError",
    "normalize_timestamp",
    "parse_timestamp",
    # Model
    "Report",
    "StatusKind",
    "DirectionKind",
    "Neutral",
    "NEUTRAL",
    "AggregateStatus",
    "STATUS_PRIORITY",
    "load_reports",
    # Store
    "ReportStoreClient",
    "create_report_store_client",
]
