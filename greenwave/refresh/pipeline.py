"""
Recompute-on-read traffic pipeline.

Fetches a fresh report collection and runs every engine component over it
from scratch. Nothing computed here is reused by the next run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..common import config, get_logger, TimedLogger, local_now, resolve_timezone, to_local
from ..reports.models import DirectionKind, Report, StatusKind, load_reports
from ..reports.store_client import ReportStoreClient
from ..transform import (
    CurrentStatus,
    DayData,
    IntervalAggregator,
    PredictionInterval,
    PredictiveEstimator,
    TimeRange,
    WeeklyGrid,
    compress_to_ranges,
    find_next_slot_per_status,
    green_wave_ranges,
    resolve_current_status,
    aggregate_today_timeline,
)

logger = get_logger("refresh.pipeline")

ReportSource = Callable[[], List[Report]]


@dataclass
class TrafficSnapshot:
    """Everything displayed for one street and direction at one moment."""

    street: Optional[str]
    direction: Optional[DirectionKind]
    computed_at: datetime
    report_count: int
    weekly_grid: WeeklyGrid
    today_timeline: DayData
    current_status: CurrentStatus
    predictions: List[PredictionInterval]
    prediction_ranges: List[TimeRange]
    next_slots: Dict[StatusKind, Optional[TimeRange]]
    extended_outlook: List[PredictionInterval]
    green_wave: List[TimeRange] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "street": self.street,
            "direction": self.direction.value if self.direction else None,
            "computed_at": self.computed_at.isoformat(),
            "report_count": self.report_count,
            "weekly_grid": [day.to_dict() for day in self.weekly_grid],
            "today_timeline": self.today_timeline.to_dict(),
            "current_status": self.current_status.to_dict(),
            "predictions": [interval.to_dict() for interval in self.predictions],
            "prediction_ranges": [r.to_dict() for r in self.prediction_ranges],
            "next_slots": {
                kind.value: slot.to_dict() if slot else None
                for kind, slot in self.next_slots.items()
            },
            "extended_outlook": [i.to_dict() for i in self.extended_outlook],
            "green_wave": [r.to_dict() for r in self.green_wave],
        }


class TrafficPipeline:
    """Runs the full engine over freshly fetched reports."""

    def __init__(
        self,
        source: ReportSource,
        street: Optional[str] = None,
        direction: Optional[DirectionKind] = None,
        prediction_count: Optional[int] = None,
        timezone: Optional[str] = None,
    ):
        """
        Initialize traffic pipeline.

        Args:
            source: Callable returning the current report collection
            street: Street the source reports on (informational)
            direction: Direction to aggregate and predict for
            prediction_count: Number of 5-minute prediction slots
            timezone: IANA timezone of the local wall clock
        """
        self.source = source
        self.street = street
        self.direction = DirectionKind(direction) if direction is not None else None
        self.prediction_count = prediction_count or config.prediction.horizon_count
        self.timezone = timezone
        self.tz = resolve_timezone(timezone)

        self.aggregator = IntervalAggregator(timezone=timezone)
        self.estimator = PredictiveEstimator(timezone=timezone)
        self.logger = logger

    def directed(self, reports: Iterable[Report]) -> List[Report]:
        """Reports in the pipeline direction (all reports when unset)."""
        if self.direction is None:
            return list(reports)
        return [r for r in reports if r.direction == self.direction]

    def compute(
        self, reports: List[Report], reference_now: Optional[datetime] = None
    ) -> TrafficSnapshot:
        """
        Run every engine component over ``reports``.

        Args:
            reports: Report collection (any order)
            reference_now: Moment considered "now"

        Returns:
            TrafficSnapshot
        """
        now = local_now(self.tz) if reference_now is None else to_local(reference_now, self.tz)
        directed = self.directed(reports)

        with TimedLogger(self.logger, f"pipeline compute: {len(reports)} reports"):
            predictions = self.estimator.predict_intervals(
                reports, self.direction, now, self.prediction_count, reference_now=now
            )
            prediction_ranges = compress_to_ranges(predictions)

            snapshot = TrafficSnapshot(
                street=self.street,
                direction=self.direction,
                computed_at=now,
                report_count=len(directed),
                weekly_grid=self.aggregator.aggregate_weekly_grid(directed, now),
                today_timeline=aggregate_today_timeline(directed, now, self.timezone),
                current_status=resolve_current_status(
                    directed, now, timezone=self.timezone
                ),
                predictions=predictions,
                prediction_ranges=prediction_ranges,
                next_slots=find_next_slot_per_status(prediction_ranges),
                extended_outlook=self.estimator.predict_extended(
                    reports, self.direction, reference_now=now
                ),
                green_wave=green_wave_ranges(directed, now, timezone=self.timezone),
            )

        return snapshot

    def run(self, reference_now: Optional[datetime] = None) -> TrafficSnapshot:
        """Fetch fresh reports and compute a snapshot."""
        reports = self.source()
        return self.compute(reports, reference_now)


def store_source(
    client: ReportStoreClient,
    street: str,
    direction: Optional[DirectionKind] = None,
    days: Optional[int] = None,
) -> ReportSource:
    """Report source that queries the report store on every call."""
    days = days or config.grid.days

    def fetch() -> List[Report]:
        return client.fetch_recent_reports(street, direction, days=days)

    return fetch


def rows_source(rows: Iterable[Dict[str, Any]]) -> ReportSource:
    """Report source over fixed raw rows; malformed timestamps are dropped."""
    rows = list(rows)

    def load() -> List[Report]:
        return load_reports(rows, strict=False)

    return load
