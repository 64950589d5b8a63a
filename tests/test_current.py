"""Tests for the current-status look-back."""

from datetime import timedelta

import pytest

from greenwave.reports import DirectionKind, StatusKind
from greenwave.transform import resolve_current_status

S, C, F = StatusKind.STOPPED, StatusKind.CRAWLING, StatusKind.FLOWING


def minutes_ago(reference_now, minutes):
    return reference_now - timedelta(minutes=minutes)


@pytest.mark.parametrize("age, window", [(10, 20), (25, 30), (50, 60)])
def test_first_window_with_votes_decides(reference_now, tz_name, make_report, age, window):
    reports = [make_report(C, minutes_ago(reference_now, age))]
    current = resolve_current_status(reports, reference_now, timezone=tz_name)

    assert current.status is C
    assert current.window_minutes == window
    assert current.total == 1


def test_no_recent_reports(reference_now, tz_name, make_report):
    reports = [make_report(S, minutes_ago(reference_now, 90))]
    current = resolve_current_status(reports, reference_now, timezone=tz_name)

    assert current.status is None
    assert current.total == 0
    assert current.to_dict() == {"status": None, "counts": {}, "window_minutes": None}


def test_narrow_window_wins_over_wider_majority(reference_now, tz_name, make_report):
    reports = [
        make_report(F, minutes_ago(reference_now, 5)),
        make_report(S, minutes_ago(reference_now, 40)),
        make_report(S, minutes_ago(reference_now, 45)),
    ]
    current = resolve_current_status(reports, reference_now, timezone=tz_name)

    assert current.status is F
    assert current.window_minutes == 20


def test_tie_uses_engine_priority(reference_now, tz_name, make_report):
    reports = [
        make_report(F, minutes_ago(reference_now, 5)),
        make_report(S, minutes_ago(reference_now, 6)),
    ]
    current = resolve_current_status(reports, reference_now, timezone=tz_name)

    assert current.status is S
    assert current.to_dict()["counts"] == {"stoi": 1, "jedzie": 1}


def test_unrecognized_and_future_reports_ignored(reference_now, tz_name, make_report):
    reports = [
        make_report(None, minutes_ago(reference_now, 5)),
        make_report(S, reference_now + timedelta(minutes=5)),
    ]
    current = resolve_current_status(reports, reference_now, timezone=tz_name)

    assert current.status is None


def test_direction_filter(reference_now, tz_name, make_report):
    reports = [
        make_report(S, minutes_ago(reference_now, 5), direction=DirectionKind.FROM_CENTER),
        make_report(F, minutes_ago(reference_now, 25)),
    ]
    current = resolve_current_status(
        reports, reference_now, DirectionKind.TO_CENTER, timezone=tz_name
    )

    assert current.status is F
    assert current.window_minutes == 30


def test_custom_lookbacks(reference_now, tz_name, make_report):
    reports = [make_report(C, minutes_ago(reference_now, 100))]
    current = resolve_current_status(
        reports, reference_now, lookbacks=[30, 120], timezone=tz_name
    )

    assert current.window_minutes == 120
