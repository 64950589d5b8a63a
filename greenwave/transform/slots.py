"""
Display-oriented consumers of compressed time ranges.

* window clipping, used to restrict the 24-hour green wave to the
  05:00-22:00 display window;
* first range of each status, for "next time you can travel" prompts;
* the green wave itself: a typical day built from the last week of reports
  matched on clock time only (no weekday matching).
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Union

from ..common import (
    clock_minutes,
    config,
    get_logger,
    log_data_processing,
    local_moment,
    local_now,
    minute_of_day,
    resolve_timezone,
    to_local,
)
from ..reports.models import STATUS_PRIORITY, DirectionKind, Report, StatusKind
from .frame import between_instants, filter_direction, minute_window, reports_to_frame
from .ranges import TimeRange, compress_to_ranges, span_minutes
from .voting import vote

logger = get_logger("transform.slots")

MINUTES_PER_DAY = 24 * 60

ClockValue = Union[time, str]


def _on_day_of(anchor: datetime, minutes: int) -> datetime:
    """Moment ``minutes`` after local midnight of ``anchor``'s day."""
    midnight = anchor.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(minutes=minutes)


def clip_ranges_to_window(
    ranges: Iterable[TimeRange], window_start: ClockValue, window_end: ClockValue
) -> List[TimeRange]:
    """
    Restrict ranges to a daily window ``[window_start, window_end)``.

    The window is anchored on each range's start date. Ranges fully outside
    are dropped; partial overlaps are truncated and their durations
    recomputed.

    Args:
        ranges: Ranges in chronological order
        window_start: Window start (time or "HH:MM")
        window_end: Window end (time or "HH:MM", "24:00" allowed)

    Returns:
        Clipped ranges, in input order
    """
    start_minutes = clock_minutes(window_start)
    end_minutes = clock_minutes(window_end)
    if end_minutes <= start_minutes:
        raise ValueError(
            f"Empty display window: {window_start!r} - {window_end!r}"
        )

    clipped = []
    for time_range in ranges:
        lower = _on_day_of(time_range.start, start_minutes)
        upper = _on_day_of(time_range.start, end_minutes)

        start = max(time_range.start, lower)
        end = min(time_range.end, upper)
        if end <= start:
            continue

        clipped.append(
            TimeRange(
                start=start,
                end=end,
                duration_minutes=span_minutes(start, end),
                status=time_range.status,
            )
        )

    return clipped


def find_next_slot_per_status(
    ranges: Iterable[TimeRange],
) -> Dict[StatusKind, Optional[TimeRange]]:
    """
    First range of each traffic status.

    Scans in chronological order and stops once every status has been seen.
    Neutral ranges are skipped.

    Returns:
        Mapping of every StatusKind to its first range, or None if absent
    """
    found: Dict[StatusKind, Optional[TimeRange]] = {kind: None for kind in STATUS_PRIORITY}
    remaining = len(found)

    for time_range in ranges:
        status = time_range.status
        if isinstance(status, StatusKind) and found[status] is None:
            found[status] = time_range
            remaining -= 1
            if remaining == 0:
                break

    return found


@dataclass
class GreenWaveInterval:
    """Typical status of one clock-time slot of the day."""

    time: datetime
    status: StatusKind


def build_green_wave_intervals(
    reports: Iterable[Report],
    reference_now: Optional[datetime] = None,
    direction: Optional[DirectionKind] = None,
    interval_minutes: Optional[int] = None,
    lookback_days: Optional[int] = None,
    timezone: Optional[str] = None,
) -> List[GreenWaveInterval]:
    """
    Typical status for every slot of the reference day.

    Uses reports from local midnight ``lookback_days`` days before
    ``reference_now`` up to ``reference_now``, matched by local clock time
    regardless of date or weekday. Empty slots default to Flowing.

    Slots are evenly spaced instants from local midnight to the next one, so
    a DST change day has 138 or 150 ten-minute slots instead of 144.

    Returns:
        One interval per slot dated on the reference day; empty when there
        are no reports at all
    """
    reports = list(reports)
    if not reports:
        return []

    green_config = config.green_wave
    interval_minutes = interval_minutes or green_config.interval_minutes
    lookback_days = lookback_days if lookback_days is not None else green_config.lookback_days
    tz = resolve_timezone(timezone)

    now = local_now(tz) if reference_now is None else to_local(reference_now, tz)
    today = now.date()
    window_start = local_moment(today - timedelta(days=lookback_days), 0, tz)

    frame = filter_direction(reports_to_frame(reports, tz), direction)
    relevant = between_instants(frame, window_start, now)

    day_start = local_moment(today, 0, tz)
    day_end = local_moment(today, MINUTES_PER_DAY, tz)
    slot_count = span_minutes(day_start, day_end) // interval_minutes

    intervals = []
    for i in range(slot_count):
        slot = tz.normalize(day_start + timedelta(minutes=i * interval_minutes))
        offset = minute_of_day(slot)
        status = vote(minute_window(relevant, offset, offset + interval_minutes)["status"])
        intervals.append(
            GreenWaveInterval(
                time=slot,
                status=status if status is not None else StatusKind.FLOWING,
            )
        )

    logger.debug(
        "Green wave intervals built",
        extra=log_data_processing(
            stage="green_wave",
            records_processed=len(relevant),
            direction=direction,
            intervals=len(intervals),
        ),
    )
    return intervals


def green_wave_ranges(
    reports: Iterable[Report],
    reference_now: Optional[datetime] = None,
    direction: Optional[DirectionKind] = None,
    timezone: Optional[str] = None,
) -> List[TimeRange]:
    """Green wave ranges clipped to the configured display window."""
    intervals = build_green_wave_intervals(
        reports, reference_now, direction, timezone=timezone
    )
    ranges = compress_to_ranges(intervals)
    return clip_ranges_to_window(
        ranges, config.green_wave.window_start, config.green_wave.window_end
    )


def format_duration(minutes: int) -> str:
    """Human-readable duration: "45 min", "1 h", "2 h 10 min"."""
    if minutes < 60:
        return f"{minutes} min"

    hours, remaining = divmod(minutes, 60)
    if remaining == 0:
        return f"{hours} h"
    return f"{hours} h {remaining} min"
