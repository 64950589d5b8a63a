"""
Temporal aggregation and prediction engine.

This package turns a collection of traffic reports into displayable status
grids, predictions and time ranges. Every function is pure: no I/O and no
state kept between calls.
"""

from .voting import tally_statuses, majority_status, vote
from .frame import reports_to_frame

from .interval_agg import (
    IntervalAggregator,
    TimeBucket,
    DayData,
    DayStatus,
    CommuteDay,
    WeeklyGrid,
    create_interval_aggregator,
    aggregate_weekly_grid,
    lookup_grid_status,
    lookup_commute,
    aggregate_today_timeline,
)

from .prediction import (
    PredictiveEstimator,
    PredictionInterval,
    create_predictive_estimator,
    predict_intervals,
    predict_extended,
)

from .ranges import TimeRange, compress_to_ranges, infer_cadence

from .slots import (
    GreenWaveInterval,
    clip_ranges_to_window,
    find_next_slot_per_status,
    build_green_wave_intervals,
    green_wave_ranges,
    format_duration,
)

from .current import CurrentStatus, resolve_current_status

__all__ = [
    # Voting
    "tally_statuses",
    "majority_status",
    "vote",
    "reports_to_frame",
    # Interval aggregation
    "IntervalAggregator",
    "TimeBucket",
    "DayData",
    "DayStatus",
    "CommuteDay",
    "WeeklyGrid",
    "create_interval_aggregator",
    "aggregate_weekly_grid",
    "lookup_grid_status",
    "lookup_commute",
    "aggregate_today_timeline",
    # Prediction
    "PredictiveEstimator",
    "PredictionInterval",
    "create_predictive_estimator",
    "predict_intervals",
    "predict_extended",
    # Ranges
    "TimeRange",
    "compress_to_ranges",
    "infer_cadence",
    # Slots
    "GreenWaveInterval",
    "clip_ranges_to_window",
    "find_next_slot_per_status",
    "build_green_wave_intervals",
    "green_wave_ranges",
    "format_duration",
    # Current status
    "CurrentStatus",
    "resolve_current_status",
]
