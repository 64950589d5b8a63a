"""
Pipeline refresh for the greenwave traffic engine.

This package runs the engine end to end over freshly fetched reports, on a
timer and in response to new-report events.
"""

from .pipeline import (
    TrafficPipeline,
    TrafficSnapshot,
    ReportSource,
    store_source,
    rows_source,
)
from .events import ReportEvent, ReportEventBus, Subscription
from .scheduler import RefreshScheduler

__all__ = [
    "TrafficPipeline",
    "TrafficSnapshot",
    "ReportSource",
    "store_source",
    "rows_source",
    "ReportEvent",
    "ReportEventBus",
    "Subscription",
    "RefreshScheduler",
]
