"""
State management utilities for the greenwave traffic engine.

This package provides in-memory tracking of pipeline refresh runs.
"""

from .run_state import (
    RunStateStore,
    RefreshRun,
    ProcessingStatus,
    create_refresh_run,
)

__all__ = [
    "RunStateStore",
    "RefreshRun",
    "ProcessingStatus",
    "create_refresh_run",
]
