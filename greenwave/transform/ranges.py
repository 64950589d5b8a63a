"""
Run-length compression of status intervals into time ranges.

Works on any evenly spaced, chronologically ordered sequence of objects with
``time`` and ``status`` attributes (prediction intervals, grid buckets,
green wave intervals), whatever their cadence.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from ..common import config
from ..reports.models import AggregateStatus


@dataclass
class TimeRange:
    """Contiguous span ``[start, end)`` sharing one status."""

    start: datetime
    end: datetime
    duration_minutes: int
    status: AggregateStatus

    @property
    def start_label(self) -> str:
        return f"{self.start:%H:%M}"

    @property
    def end_label(self) -> str:
        # A span running up to the following midnight reads "24:00"
        if (
            self.end.date() > self.start.date()
            and self.end.hour == 0
            and self.end.minute == 0
        ):
            return "24:00"
        return f"{self.end:%H:%M}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start": self.start_label,
            "end": self.end_label,
            "duration_minutes": self.duration_minutes,
            "status": self.status.value,
        }


def span_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two moments."""
    return int((end - start).total_seconds() // 60)


def infer_cadence(
    intervals: Sequence[Any], cadence: Optional[timedelta] = None
) -> timedelta:
    """
    Spacing of an interval sequence.

    Taken from the first two intervals; a single interval falls back to its
    own width (``end - start``), then to ``cadence``, then to the configured
    prediction interval.
    """
    if len(intervals) >= 2:
        return intervals[1].time - intervals[0].time

    only = intervals[0]
    end = getattr(only, "end", None)
    if end is not None:
        return end - only.time
    if cadence is not None:
        return cadence
    return timedelta(minutes=config.prediction.interval_minutes)


def compress_to_ranges(
    intervals: Sequence[Any], cadence: Optional[timedelta] = None
) -> List[TimeRange]:
    """
    Merge consecutive intervals with the same status into ranges.

    Args:
        intervals: Evenly spaced intervals, oldest first
        cadence: Spacing to use when it cannot be inferred from the data

    Returns:
        Contiguous ranges whose durations add up to len(intervals) * cadence
    """
    if not intervals:
        return []

    step = infer_cadence(intervals, cadence)

    ranges = []
    range_start = intervals[0].time
    current_status = intervals[0].status

    for interval in intervals[1:]:
        if interval.status != current_status:
            ranges.append(
                TimeRange(
                    start=range_start,
                    end=interval.time,
                    duration_minutes=span_minutes(range_start, interval.time),
                    status=current_status,
                )
            )
            range_start = interval.time
            current_status = interval.status

    end_time = intervals[-1].time + step
    ranges.append(
        TimeRange(
            start=range_start,
            end=end_time,
            duration_minutes=span_minutes(range_start, end_time),
            status=current_status,
        )
    )

    return ranges
