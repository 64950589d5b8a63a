"""
Report frames: reports flattened into local wall-clock columns.

Every engine component matches reports by local calendar date, weekday and
minute of day, so those are computed once per call here.
"""

from datetime import datetime
from typing import Iterable, Optional

import pandas as pd
from pytz import BaseTzInfo

from ..common import minute_of_day, to_local
from ..reports.models import DirectionKind, Report

FRAME_COLUMNS = [
    "status",
    "direction",
    "epoch_seconds",
    "day_ordinal",
    "weekday",
    "minute_of_day",
]


def reports_to_frame(reports: Iterable[Report], tz: BaseTzInfo) -> pd.DataFrame:
    """
    Build a report frame.

    Columns:
        status: wire value of the status, None when unrecognized
        direction: wire value of the direction, None when unrecognized
        epoch_seconds: the instant as a POSIX timestamp
        day_ordinal: local calendar date as ``date.toordinal()``
        weekday: local weekday, Monday=0 ... Sunday=6
        minute_of_day: local minutes after midnight

    Args:
        reports: Reports in any order
        tz: Local timezone

    Returns:
        DataFrame with FRAME_COLUMNS
    """
    rows = []
    for report in reports:
        local = to_local(report.reported_at, tz)
        rows.append(
            {
                "status": report.status.value if report.status else None,
                "direction": report.direction.value if report.direction else None,
                "epoch_seconds": report.reported_at.timestamp(),
                "day_ordinal": local.toordinal(),
                "weekday": local.weekday(),
                "minute_of_day": minute_of_day(local),
            }
        )

    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    for column in ("day_ordinal", "weekday", "minute_of_day"):
        frame[column] = frame[column].astype("int64")
    frame["epoch_seconds"] = frame["epoch_seconds"].astype("float64")
    return frame


def filter_direction(
    frame: pd.DataFrame, direction: Optional[DirectionKind]
) -> pd.DataFrame:
    """Keep only reports in ``direction`` (all reports when None)."""
    if direction is None:
        return frame
    return frame[frame["direction"] == DirectionKind(direction).value]


def minute_window(frame: pd.DataFrame, start_minute: int, end_minute: int) -> pd.DataFrame:
    """Reports whose local minute of day falls in ``[start_minute, end_minute)``."""
    minutes = frame["minute_of_day"]
    return frame[(minutes >= start_minute) & (minutes < end_minute)]


def between_instants(frame: pd.DataFrame, start: datetime, end: datetime) -> pd.DataFrame:
    """Reports with ``start <= reported_at <= end``."""
    epochs = frame["epoch_seconds"]
    return frame[(epochs >= start.timestamp()) & (epochs <= end.timestamp())]
