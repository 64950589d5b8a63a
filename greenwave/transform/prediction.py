"""
Near-future traffic prediction for the greenwave traffic engine.

Predicts a status per 5-minute slot from historical reports recorded on the
same weekday as the reference moment, widening the search when a slot has no
history:

1. exact slot window, same weekday;
2. slot window widened on both sides, same weekday;
3. widened window, any Monday-Friday (only when the reference day is a weekday);
4. optimistic default (Flowing).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..common import (
    config,
    get_logger,
    TimedLogger,
    log_data_processing,
    local_now,
    minute_of_day,
    resolve_timezone,
    to_local,
)
from ..reports.models import DirectionKind, Report, StatusKind
from .frame import filter_direction, minute_window, reports_to_frame
from .voting import vote

logger = get_logger("transform.prediction")

WORKDAYS = (0, 1, 2, 3, 4)


@dataclass
class PredictionInterval:
    """Predicted status of one slot starting at ``time``."""

    time: datetime
    status: StatusKind

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"time": self.time.isoformat(), "status": self.status.value}


class PredictiveEstimator:
    """Weekday-matched status prediction with tiered fallback."""

    def __init__(
        self,
        interval_minutes: Optional[int] = None,
        widen_minutes: Optional[int] = None,
        fallback_status: Optional[StatusKind] = None,
        timezone: Optional[str] = None,
    ):
        """
        Initialize predictive estimator.

        Args:
            interval_minutes: Slot width (default 5)
            widen_minutes: Widening applied to each side of a slot in the
                fallback tiers (default 5)
            fallback_status: Status used when no history matches (default Flowing)
            timezone: IANA timezone of the local wall clock
        """
        self.interval_minutes = interval_minutes or config.prediction.interval_minutes
        self.widen_minutes = (
            widen_minutes if widen_minutes is not None else config.prediction.widen_minutes
        )
        self.fallback_status = fallback_status or StatusKind.FLOWING
        self.tz = resolve_timezone(timezone)

        self.logger = logger

    def round_start(self, start_time: datetime) -> datetime:
        """Round a moment down to the slot boundary in local time."""
        local = to_local(start_time, self.tz)
        return local.replace(
            minute=local.minute - local.minute % self.interval_minutes,
            second=0,
            microsecond=0,
        )

    def build_pools(
        self,
        frame: pd.DataFrame,
        direction: Optional[DirectionKind],
        reference_now: datetime,
    ) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
        """
        Split history into the candidate pools.

        Returns:
            (same-weekday pool, Monday-Friday pool or None on weekends)
        """
        directed = filter_direction(frame, direction)
        today = to_local(reference_now, self.tz).weekday()

        same_day = directed[directed["weekday"] == today]
        workdays = (
            directed[directed["weekday"].isin(WORKDAYS)] if today in WORKDAYS else None
        )
        return same_day, workdays

    def resolve_slot(
        self,
        slot_minute: int,
        same_day: pd.DataFrame,
        workdays: Optional[pd.DataFrame],
    ) -> Tuple[StatusKind, int]:
        """
        Resolve the status of one slot.

        Args:
            slot_minute: Slot start in local minutes after midnight
            same_day: Same-weekday pool
            workdays: Monday-Friday pool, None on weekends

        Returns:
            (status, tier that decided it: 1-3, or 4 for the default)
        """
        slot_end = slot_minute + self.interval_minutes
        wide_start = slot_minute - self.widen_minutes
        wide_end = slot_end + self.widen_minutes

        status = vote(minute_window(same_day, slot_minute, slot_end)["status"])
        if status is not None:
            return status, 1

        status = vote(minute_window(same_day, wide_start, wide_end)["status"])
        if status is not None:
            return status, 2

        if workdays is not None:
            status = vote(minute_window(workdays, wide_start, wide_end)["status"])
            if status is not None:
                return status, 3

        return self.fallback_status, 4

    def _predict_frame(
        self,
        frame: pd.DataFrame,
        direction: Optional[DirectionKind],
        start_time: datetime,
        count: int,
        reference_now: datetime,
    ) -> List[PredictionInterval]:
        same_day, workdays = self.build_pools(frame, direction, reference_now)
        base = self.round_start(start_time)

        intervals = []
        tiers = {1: 0, 2: 0, 3: 0, 4: 0}
        for i in range(count):
            slot = self.tz.normalize(base + timedelta(minutes=i * self.interval_minutes))
            status, tier = self.resolve_slot(minute_of_day(slot), same_day, workdays)
            tiers[tier] += 1
            intervals.append(PredictionInterval(time=slot, status=status))

        self.logger.debug(
            "Prediction complete",
            extra=log_data_processing(
                stage="predict_intervals",
                records_processed=count,
                direction=direction,
                same_weekday_pool=len(same_day),
                workday_pool=len(workdays) if workdays is not None else 0,
                tier_counts={str(k): v for k, v in tiers.items()},
            ),
        )
        return intervals

    def predict_intervals(
        self,
        reports: Iterable[Report],
        direction: Optional[DirectionKind],
        start_time: datetime,
        count: int,
        reference_now: Optional[datetime] = None,
    ) -> List[PredictionInterval]:
        """
        Predict ``count`` consecutive slots starting at ``start_time``.

        The weekday whose history is searched is the weekday of
        ``reference_now`` (the current wall clock when omitted), not of
        ``start_time``.

        Args:
            reports: Historical reports in any order
            direction: Direction to predict for
            start_time: First slot, rounded down to the slot boundary
            count: Number of slots
            reference_now: Moment that picks the weekday

        Returns:
            Exactly ``count`` PredictionInterval objects, never Neutral
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")

        reference_now = local_now(self.tz) if reference_now is None else reference_now
        direction = DirectionKind(direction) if direction is not None else None
        frame = reports_to_frame(reports, self.tz)

        with TimedLogger(self.logger, f"predict_intervals: {count} slots"):
            return self._predict_frame(frame, direction, start_time, count, reference_now)

    def predict_extended(
        self,
        reports: Iterable[Report],
        direction: Optional[DirectionKind],
        reference_now: Optional[datetime] = None,
        count: Optional[int] = None,
        step_minutes: Optional[int] = None,
        offset_minutes: Optional[int] = None,
    ) -> List[PredictionInterval]:
        """
        Coarse outlook for the further hours.

        Samples one slot every ``step_minutes`` (default 20), ``count`` times
        (default 30), starting ``offset_minutes`` (default 60) after
        ``reference_now``.

        Returns:
            ``count`` PredictionInterval objects spaced ``step_minutes`` apart
        """
        prediction_config = config.prediction
        count = count if count is not None else prediction_config.extended_count
        step_minutes = step_minutes or prediction_config.extended_step_minutes
        offset_minutes = (
            offset_minutes
            if offset_minutes is not None
            else prediction_config.extended_offset_minutes
        )

        reference_now = local_now(self.tz) if reference_now is None else reference_now
        direction = DirectionKind(direction) if direction is not None else None
        frame = reports_to_frame(reports, self.tz)
        start = to_local(reference_now, self.tz) + timedelta(minutes=offset_minutes)

        outlook = []
        with TimedLogger(self.logger, f"predict_extended: {count} samples"):
            for i in range(count):
                sample_time = self.tz.normalize(start + timedelta(minutes=i * step_minutes))
                outlook.extend(
                    self._predict_frame(frame, direction, sample_time, 1, reference_now)
                )

        return outlook


# Convenience functions
def create_predictive_estimator(
    interval_minutes: Optional[int] = None, widen_minutes: Optional[int] = None
) -> PredictiveEstimator:
    """Create predictive estimator with configuration."""
    return PredictiveEstimator(interval_minutes, widen_minutes)


def predict_intervals(
    reports: Iterable[Report],
    direction: Optional[DirectionKind],
    start_time: datetime,
    count: int,
    reference_now: Optional[datetime] = None,
) -> List[PredictionInterval]:
    """Predict slots using the default estimator."""
    return create_predictive_estimator().predict_intervals(
        reports, direction, start_time, count, reference_now
    )


def predict_extended(
    reports: Iterable[Report],
    direction: Optional[DirectionKind],
    reference_now: Optional[datetime] = None,
) -> List[PredictionInterval]:
    """Further-hours outlook using the default estimator."""
    return create_predictive_estimator().predict_extended(
        reports, direction, reference_now
    )
