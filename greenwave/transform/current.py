"""
Current traffic status from the most recent reports.

Looks back over a widening window (20, 30, then 60 minutes by default) and
lets the first window holding any recognized report decide.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from ..common import (
    config,
    get_logger,
    local_now,
    log_status_vote,
    resolve_timezone,
    to_local,
)
from ..reports.models import DirectionKind, Report, StatusKind
from .frame import between_instants, filter_direction, reports_to_frame
from .voting import majority_status, tally_statuses

logger = get_logger("transform.current")


@dataclass
class CurrentStatus:
    """Status right now, with the votes behind it."""

    status: Optional[StatusKind]
    counts: Dict[StatusKind, int] = field(default_factory=dict)
    window_minutes: Optional[int] = None

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value if self.status else None,
            "counts": {kind.value: count for kind, count in self.counts.items() if count},
            "window_minutes": self.window_minutes,
        }


def resolve_current_status(
    reports: Iterable[Report],
    reference_now: Optional[datetime] = None,
    direction: Optional[DirectionKind] = None,
    lookbacks: Optional[List[int]] = None,
    timezone: Optional[str] = None,
) -> CurrentStatus:
    """
    Resolve the current status of a street.

    Args:
        reports: Recent reports in any order
        reference_now: Moment considered "now"
        direction: Only reports in this direction
        lookbacks: Widening look-back windows in minutes
        timezone: IANA timezone of the local wall clock

    Returns:
        CurrentStatus; ``status`` is None when no window has any vote
    """
    lookbacks = lookbacks or config.refresh.current_status_lookbacks
    tz = resolve_timezone(timezone)
    now = local_now(tz) if reference_now is None else to_local(reference_now, tz)

    frame = filter_direction(reports_to_frame(reports, tz), direction)

    for minutes in lookbacks:
        window = between_instants(frame, now - timedelta(minutes=minutes), now)
        tally = tally_statuses(window["status"])
        status = majority_status(tally)
        if status is not None:
            logger.debug(
                "Current status resolved",
                extra=log_status_vote(
                    "current_status", tally, status, window_minutes=minutes
                ),
            )
            return CurrentStatus(status=status, counts=tally, window_minutes=minutes)

    logger.debug(
        "No recent votes",
        extra=log_status_vote("current_status", {}, None, window_minutes=lookbacks[-1]),
    )
    return CurrentStatus(status=None)
