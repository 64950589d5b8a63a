"""
Shared fixtures for the greenwave test suite.

All tests run against a fixed reference moment (Friday 2025-11-28 07:40,
Europe/Warsaw) so weekday matching and the weekly window are deterministic.
"""

from datetime import datetime

import pytest
import pytz

from greenwave.reports import DirectionKind, Report, StatusKind

TZ_NAME = "Europe/Warsaw"
TZ = pytz.timezone(TZ_NAME)


def local_dt(year, month, day, hour=0, minute=0, second=0):
    """Aware wall-clock moment in the test timezone."""
    return TZ.localize(datetime(year, month, day, hour, minute, second))


@pytest.fixture
def tz_name():
    return TZ_NAME


@pytest.fixture
def reference_now():
    """Friday 2025-11-28 07:40 local time."""
    return local_dt(2025, 11, 28, 7, 40)


@pytest.fixture
def at():
    """Build local moments: at(28, 7, 41) -> 2025-11-28 07:41."""

    def build(day, hour=0, minute=0, month=11, year=2025):
        return local_dt(year, month, day, hour, minute)

    return build


@pytest.fixture
def make_report():
    """Report factory defaulting to the to-centre direction."""

    def build(status, when, direction=DirectionKind.TO_CENTER, street="Kasztanowa"):
        return Report(status=status, reported_at=when, direction=direction, street=street)

    return build


@pytest.fixture
def sample_rows():
    """Raw report store rows in both timestamp encodings."""
    return [
        {
            "status": StatusKind.STOPPED.value,
            "reported_at": "2025-11-27T06:05:00.000Z",
            "direction": "do centrum",
            "street": "Kasztanowa",
        },
        {
            "status": StatusKind.FLOWING.value,
            "reported_at": "2025-11-27 06:12:30.125+00",
            "direction": "do centrum",
            "street": "Kasztanowa",
        },
        {
            "status": StatusKind.CRAWLING.value,
            "reported_at": "2025-11-27 16:40:00+00",
            "direction": "od centrum",
            "street": "Kasztanowa",
        },
        {
            "status": "korek",
            "reported_at": "2025-11-26T07:00:00+01:00",
            "direction": "do centrum",
            "street": "Kasztanowa",
        },
    ]
