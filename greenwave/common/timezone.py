"""Timezone resolution and local wall-clock helpers."""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz
from pytz import BaseTzInfo

from .config import config
from .logging import get_logger

logger = get_logger("common.timezone")


def resolve_timezone(tz_string: Optional[str] = None) -> BaseTzInfo:
    """Resolve an IANA timezone name to a pytz timezone object.

    Falls back to UTC with a warning if the name is unknown. ``None`` means
    the configured ``TRAFFIC_TIMEZONE``.

    Args:
        tz_string: IANA timezone (e.g. 'Europe/Warsaw').

    Returns:
        pytz timezone object (always valid).
    """
    tz_string = tz_string if tz_string is not None else config.timezone
    if not tz_string:
        logger.warning("No timezone provided; falling back to UTC.")
        return pytz.utc

    try:
        return pytz.timezone(tz_string)
    except pytz.UnknownTimeZoneError:
        logger.warning(
            f"Unknown timezone '{tz_string}'; falling back to UTC.",
            extra={"timezone": tz_string},
        )
        return pytz.utc


def to_local(value: datetime, tz: BaseTzInfo) -> datetime:
    """Convert an instant to local wall-clock time; naive values are taken as local."""
    if value.tzinfo is None:
        return tz.localize(value)
    return value.astimezone(tz)


def local_now(tz: BaseTzInfo) -> datetime:
    """Current wall-clock moment in ``tz``."""
    return datetime.now(tz)


def local_moment(day: date, minute_of_day: int, tz: BaseTzInfo) -> datetime:
    """Localized datetime ``minute_of_day`` minutes after midnight of ``day``.

    ``minute_of_day`` may reach 24:00, which lands on the next day's midnight.
    """
    days, minutes = divmod(minute_of_day, 24 * 60)
    day = day + timedelta(days=days)
    return tz.localize(datetime.combine(day, time(minutes // 60, minutes % 60)))


def minute_of_day(value: datetime) -> int:
    """Minutes after local midnight, ignoring seconds."""
    return value.hour * 60 + value.minute
