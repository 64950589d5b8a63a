"""
Timestamp normalization for traffic reports.

The report store hands out ``reported_at`` in two encodings:

* ISO 8601 with a ``T`` separator and a full offset
  (``2025-11-28T04:19:51.686Z``), as produced by API clients;
* the database text form with a space separator and a truncated offset
  (``2025-11-28 04:19:51.686+00``).

Both are normalized to the same aware ``datetime`` before any comparison.
"""

import re
from datetime import datetime
from typing import Optional, Union

from pytz import BaseTzInfo

from ..common import resolve_timezone, to_local

# Offset glued to the end of a time part: +H, +HH (no colon)
_TRUNCATED_OFFSET = re.compile(
    r"(?P<clock>T\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)(?P<sign>[+-])(?P<hours>\d{1,2})$"
)


class TimestampParseError(ValueError):
    """Raised when a report timestamp cannot be parsed."""

    def __init__(self, value: object, reason: str = "unrecognized timestamp format"):
        self.value = value
        super().__init__(f"Cannot parse timestamp {value!r}: {reason}")


def normalize_timestamp(value: str) -> str:
    """
    Rewrite a report timestamp into a form ``datetime.fromisoformat`` accepts.

    The space separator becomes ``T``; a trailing ``Z`` becomes ``+00:00``;
    ``+00``/``+H``/``+HH`` offsets are expanded to ``+HH:00``.

    Args:
        value: Raw timestamp text

    Returns:
        Normalized ISO 8601 text
    """
    text = value.strip()

    if "T" not in text and " " in text:
        text = text.replace(" ", "T", 1)

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    match = _TRUNCATED_OFFSET.search(text)
    if match:
        text = (
            text[: match.start()]
            + f"{match.group('clock')}{match.group('sign')}"
            + f"{int(match.group('hours')):02d}:00"
        )

    return text


def parse_timestamp(
    value: Union[str, datetime], tz: Optional[BaseTzInfo] = None
) -> datetime:
    """
    Parse a report timestamp into a timezone-aware instant.

    Args:
        value: Timestamp text in either supported encoding, or a datetime
        tz: Timezone used for naive values (defaults to the configured one)

    Returns:
        Aware datetime

    Raises:
        TimestampParseError: If the value is not a supported timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        if not value.strip():
            raise TimestampParseError(value, "empty value")
        try:
            parsed = datetime.fromisoformat(normalize_timestamp(value))
        except ValueError as e:
            raise TimestampParseError(value, str(e)) from e
    else:
        raise TimestampParseError(value, f"unsupported type {type(value).__name__}")

    if parsed.tzinfo is None:
        return to_local(parsed, tz or resolve_timezone())
    return parsed
