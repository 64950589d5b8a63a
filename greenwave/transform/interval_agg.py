"""
Interval aggregation for the greenwave traffic engine.

Buckets a week of traffic reports into fixed time slots per calendar day and
resolves a majority status per slot, producing the retrospective weekly grid
(05:00-22:00 in 30-minute buckets by default) and the hourly today timeline.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from ..common import (
    config,
    get_logger,
    TimedLogger,
    log_data_processing,
    local_moment,
    local_now,
    resolve_timezone,
    to_local,
)
from ..reports.models import NEUTRAL, AggregateStatus, Report
from .frame import minute_window, reports_to_frame
from .voting import vote

logger = get_logger("transform.interval_agg")


@dataclass
class TimeBucket:
    """Half-open slot ``[start, end)`` with its resolved status."""

    start: datetime
    end: datetime
    status: AggregateStatus

    @property
    def time(self) -> datetime:
        """Slot start; lets buckets be range-compressed like prediction intervals."""
        return self.start

    @property
    def hour(self) -> int:
        return self.start.hour

    @property
    def minute(self) -> int:
        return self.start.minute

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "hour": self.hour,
            "minute": self.minute,
            "status": self.status.value,
        }


@dataclass
class DayData:
    """All buckets of one calendar day."""

    day: date
    blocks: List[TimeBucket]

    def find_block(self, hour: int, minute: int) -> Optional[TimeBucket]:
        """Bucket starting at ``hour:minute``, if the day has one."""
        for block in self.blocks:
            if block.hour == hour and block.minute == minute:
                return block
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "day": self.day.isoformat(),
            "blocks": [block.to_dict() for block in self.blocks],
        }


@dataclass
class DayStatus:
    """Status of one grid day at a looked-up time."""

    date: date
    status: AggregateStatus


@dataclass
class CommuteDay:
    """Departure and return conditions of one grid day."""

    date: date
    departure_status: AggregateStatus
    return_status: AggregateStatus

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "departure_status": self.departure_status.value,
            "return_status": self.return_status.value,
        }


WeeklyGrid = List[DayData]


class IntervalAggregator:
    """Aggregates traffic reports into fixed-width buckets per calendar day."""

    def __init__(
        self,
        day_start_hour: Optional[int] = None,
        day_end_hour: Optional[int] = None,
        bucket_minutes: Optional[int] = None,
        days: Optional[int] = None,
        timezone: Optional[str] = None,
    ):
        """
        Initialize interval aggregator.

        Args:
            day_start_hour: First hour covered by buckets (default 5)
            day_end_hour: Hour the last bucket ends at (default 22)
            bucket_minutes: Bucket width in minutes (default 30)
            days: Calendar days in the weekly grid (default 7)
            timezone: IANA timezone of the local wall clock
        """
        grid_config = config.grid
        self.day_start_hour = (
            day_start_hour if day_start_hour is not None else grid_config.day_start_hour
        )
        self.day_end_hour = (
            day_end_hour if day_end_hour is not None else grid_config.day_end_hour
        )
        self.bucket_minutes = bucket_minutes or grid_config.bucket_minutes
        self.days = days or grid_config.days
        self.tz = resolve_timezone(timezone)

        if not (0 <= self.day_start_hour < self.day_end_hour <= 24):
            raise ValueError(
                f"Invalid bucket hours: {self.day_start_hour}-{self.day_end_hour}"
            )

        self.logger = logger

    @property
    def bucket_offsets(self) -> List[int]:
        """Start of every bucket of a day, in minutes after midnight."""
        return list(
            range(
                self.day_start_hour * 60,
                self.day_end_hour * 60,
                self.bucket_minutes,
            )
        )

    def reference_day(self, reference_now: Optional[datetime] = None) -> date:
        """Local calendar date of ``reference_now`` (today when omitted)."""
        now = local_now(self.tz) if reference_now is None else to_local(reference_now, self.tz)
        return now.date()

    def _aggregate_frame_day(self, frame: pd.DataFrame, day: date) -> DayData:
        day_frame = frame[frame["day_ordinal"] == day.toordinal()]

        blocks = []
        for offset in self.bucket_offsets:
            bucket_frame = minute_window(day_frame, offset, offset + self.bucket_minutes)
            status = vote(bucket_frame["status"])

            blocks.append(
                TimeBucket(
                    start=local_moment(day, offset, self.tz),
                    end=local_moment(day, offset + self.bucket_minutes, self.tz),
                    status=status if status is not None else NEUTRAL,
                )
            )

        return DayData(day=day, blocks=blocks)

    def aggregate_day(self, reports: Iterable[Report], day: date) -> DayData:
        """
        Aggregate reports into the buckets of a single calendar day.

        Args:
            reports: Reports in any order
            day: Local calendar date

        Returns:
            DayData with one bucket per slot of the configured hour range
        """
        return self._aggregate_frame_day(reports_to_frame(reports, self.tz), day)

    def aggregate_weekly_grid(
        self, reports: Iterable[Report], reference_now: Optional[datetime] = None
    ) -> WeeklyGrid:
        """
        Aggregate reports into the weekly grid.

        The grid covers ``days`` calendar days ending with the local date of
        ``reference_now`` (today when omitted), oldest first.

        Args:
            reports: Reports in any order
            reference_now: Moment that defines "today"

        Returns:
            List of DayData, one per calendar day
        """
        frame = reports_to_frame(reports, self.tz)
        today = self.reference_day(reference_now)

        with TimedLogger(self.logger, f"aggregate_weekly_grid: {len(frame)} reports"):
            grid = [
                self._aggregate_frame_day(frame, today - timedelta(days=offset))
                for offset in range(self.days - 1, -1, -1)
            ]

        self.logger.debug(
            "Weekly grid aggregation complete",
            extra=log_data_processing(
                stage="weekly_grid",
                records_processed=len(frame),
                days=len(grid),
                buckets_per_day=len(self.bucket_offsets),
            ),
        )
        return grid

    def _rounded_lookup(self, hour: int, minute: int) -> tuple:
        total = hour * 60 + minute
        total -= total % self.bucket_minutes
        return divmod(total, 60)

    def lookup_grid_status(
        self, grid: WeeklyGrid, hour: int, minute: int
    ) -> Dict[int, DayStatus]:
        """
        Look up the status of every grid day at a time of day.

        The minute is rounded down to the bucket boundary (10:15 -> 10:00).
        Days without a bucket at that time are omitted.

        Args:
            grid: Weekly grid
            hour: Hour of day
            minute: Minute of hour

        Returns:
            Mapping of weekday (Monday=0 ... Sunday=6) to DayStatus
        """
        rounded_hour, rounded_minute = self._rounded_lookup(hour, minute)

        result: Dict[int, DayStatus] = {}
        for day_data in grid:
            block = day_data.find_block(rounded_hour, rounded_minute)
            if block is not None:
                result[day_data.day.weekday()] = DayStatus(
                    date=day_data.day, status=block.status
                )

        return result

    def lookup_commute(
        self, grid: WeeklyGrid, departure: time, return_: time
    ) -> List[CommuteDay]:
        """
        Departure and return conditions for every grid day.

        Times are rounded down to the bucket boundary; a time outside the
        grid's hours resolves to NEUTRAL.

        Args:
            grid: Weekly grid
            departure: Departure time of day
            return_: Return time of day

        Returns:
            One CommuteDay per grid day, in grid order
        """
        dep_hour, dep_minute = self._rounded_lookup(departure.hour, departure.minute)
        ret_hour, ret_minute = self._rounded_lookup(return_.hour, return_.minute)

        commute = []
        for day_data in grid:
            dep_block = day_data.find_block(dep_hour, dep_minute)
            ret_block = day_data.find_block(ret_hour, ret_minute)
            commute.append(
                CommuteDay(
                    date=day_data.day,
                    departure_status=dep_block.status if dep_block else NEUTRAL,
                    return_status=ret_block.status if ret_block else NEUTRAL,
                )
            )

        return commute


# Convenience functions
def create_interval_aggregator(
    day_start_hour: Optional[int] = None,
    day_end_hour: Optional[int] = None,
    bucket_minutes: Optional[int] = None,
) -> IntervalAggregator:
    """Create interval aggregator with configuration."""
    return IntervalAggregator(day_start_hour, day_end_hour, bucket_minutes)


def aggregate_weekly_grid(
    reports: Iterable[Report], reference_now: Optional[datetime] = None
) -> WeeklyGrid:
    """Aggregate reports into the weekly grid using the default aggregator."""
    return create_interval_aggregator().aggregate_weekly_grid(reports, reference_now)


def lookup_grid_status(grid: WeeklyGrid, hour: int, minute: int) -> Dict[int, DayStatus]:
    """Look up a time of day in the weekly grid using the default aggregator."""
    return create_interval_aggregator().lookup_grid_status(grid, hour, minute)


def lookup_commute(grid: WeeklyGrid, departure: time, return_: time) -> List[CommuteDay]:
    """Commute lookup using the default aggregator."""
    return create_interval_aggregator().lookup_commute(grid, departure, return_)


def aggregate_today_timeline(
    reports: Iterable[Report],
    reference_now: Optional[datetime] = None,
    timezone: Optional[str] = None,
) -> DayData:
    """Hourly buckets (00:00-24:00) of the reference day."""
    aggregator = IntervalAggregator(
        day_start_hour=0, day_end_hour=24, bucket_minutes=60, timezone=timezone
    )
    return aggregator.aggregate_day(reports, aggregator.reference_day(reference_now))
