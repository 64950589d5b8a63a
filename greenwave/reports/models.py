"""
Traffic report data model.

Reports are the only input of the engine: a discrete traffic state observed by
a user on a street, in a direction, at a moment in time.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from ..common import get_logger, log_data_processing
from .timestamps import TimestampParseError, parse_timestamp

logger = get_logger("reports.models")


class StatusKind(str, Enum):
    """Traffic state reported by users."""

    STOPPED = "stoi"
    CRAWLING = "toczy_sie"
    FLOWING = "jedzie"

    @classmethod
    def parse(cls, value: Any) -> Optional["StatusKind"]:
        """
        Map a wire value to a status.

        Accepts the stored values ("stoi", "toczy_sie", "jedzie") and member
        names in any case. Anything else is unrecognized and yields None.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None

        text = value.strip()
        try:
            return cls(text)
        except ValueError:
            return cls.__members__.get(text.upper())


class Neutral(str, Enum):
    """Aggregate status of a bucket nobody reported on."""

    NEUTRAL = "neutral"


NEUTRAL = Neutral.NEUTRAL

AggregateStatus = Union[StatusKind, Neutral]

# Tie-break order for majority votes
STATUS_PRIORITY = (StatusKind.STOPPED, StatusKind.CRAWLING, StatusKind.FLOWING)


class DirectionKind(str, Enum):
    """Direction of travel relative to the city centre."""

    TO_CENTER = "do centrum"
    FROM_CENTER = "od centrum"

    @classmethod
    def parse(cls, value: Any) -> Optional["DirectionKind"]:
        """Map a wire value ("do centrum", "to_center", ...) to a direction."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None

        text = value.strip()
        try:
            return cls(text)
        except ValueError:
            return cls.__members__.get(text.upper())


@dataclass(frozen=True)
class Report:
    """A single crowdsourced traffic report."""

    status: Optional[StatusKind]
    reported_at: datetime
    direction: Optional[DirectionKind] = None
    street: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Report":
        """
        Create from a report store row.

        Unrecognized status or direction values are kept as None so they can
        be excluded from tallies and filters.

        Raises:
            TimestampParseError: If ``reported_at`` is missing or malformed
        """
        return cls(
            status=StatusKind.parse(data.get("status")),
            reported_at=parse_timestamp(data.get("reported_at")),
            direction=DirectionKind.parse(data.get("direction")),
            street=data.get("street"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value if self.status else None,
            "reported_at": self.reported_at.isoformat(),
            "direction": self.direction.value if self.direction else None,
            "street": self.street,
        }


def load_reports(rows: Iterable[Dict[str, Any]], strict: bool = True) -> List[Report]:
    """
    Convert report store rows into Report objects.

    Args:
        rows: Raw rows (dicts with status, reported_at, direction, street)
        strict: Propagate TimestampParseError instead of dropping the row

    Returns:
        List of reports, in input order
    """
    reports = []
    failed = 0

    for row in rows:
        try:
            reports.append(Report.from_dict(row))
        except TimestampParseError as e:
            if strict:
                raise
            failed += 1
            logger.warning(
                f"Dropping report with malformed timestamp: {e}",
                extra={"reported_at": str(e.value), "street": row.get("street")},
            )

    if failed:
        logger.info(
            "Loaded reports with failures",
            extra=log_data_processing(
                stage="load_reports", records_processed=len(reports), records_failed=failed
            ),
        )

    return reports
