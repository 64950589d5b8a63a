"""Tests for display window clipping, next-slot search and the green wave."""

from datetime import time, timedelta

import pytest

from greenwave.reports import NEUTRAL, DirectionKind, StatusKind
from greenwave.transform import (
    TimeRange,
    build_green_wave_intervals,
    clip_ranges_to_window,
    compress_to_ranges,
    find_next_slot_per_status,
    format_duration,
    green_wave_ranges,
)

S, C, F = StatusKind.STOPPED, StatusKind.CRAWLING, StatusKind.FLOWING


@pytest.fixture
def span(at):
    """span(4, 0, 6, 0, F) -> TimeRange 04:00-06:00 on the reference day."""

    def build(start_hour, start_minute, end_hour, end_minute, status=F):
        start = at(28, start_hour, start_minute)
        end = at(28, end_hour, end_minute)
        return TimeRange(
            start=start,
            end=end,
            duration_minutes=int((end - start).total_seconds() // 60),
            status=status,
        )

    return build


class TestClipRangesToWindow:
    def test_partial_overlap_truncated(self, span):
        clipped = clip_ranges_to_window([span(4, 0, 6, 0)], time(5, 0), time(22, 0))

        assert len(clipped) == 1
        assert (clipped[0].start_label, clipped[0].end_label) == ("05:00", "06:00")
        assert clipped[0].duration_minutes == 60

    def test_outside_ranges_dropped(self, span):
        ranges = [span(3, 0, 4, 0), span(8, 0, 9, 0, S), span(22, 0, 23, 0)]
        clipped = clip_ranges_to_window(ranges, "05:00", "22:00")

        assert len(clipped) == 1
        assert clipped[0].status is S
        assert clipped[0].duration_minutes == 60

    def test_end_truncated(self, span):
        clipped = clip_ranges_to_window([span(21, 0, 23, 0, C)], "05:00", "22:00")

        assert clipped[0].end_label == "22:00"
        assert clipped[0].duration_minutes == 60

    def test_inside_range_unchanged(self, span):
        original = span(8, 0, 9, 30, S)
        assert clip_ranges_to_window([original], "05:00", "22:00") == [original]

    def test_empty_window_rejected(self, span):
        with pytest.raises(ValueError):
            clip_ranges_to_window([span(8, 0, 9, 0)], "22:00", "05:00")


class TestFindNextSlotPerStatus:
    def test_first_range_of_each_status(self, span):
        ranges = [
            span(7, 0, 7, 30, F),
            span(7, 30, 8, 0, S),
            span(8, 0, 8, 30, F),
            span(8, 30, 9, 0, C),
        ]
        found = find_next_slot_per_status(ranges)

        assert found[F] is ranges[0]
        assert found[S] is ranges[1]
        assert found[C] is ranges[3]

    def test_missing_status_is_none(self, span):
        found = find_next_slot_per_status([span(7, 0, 8, 0, F)])

        assert set(found) == {S, C, F}
        assert found[S] is None
        assert found[C] is None

    def test_neutral_skipped(self, span):
        ranges = [span(5, 0, 7, 0, NEUTRAL), span(7, 0, 8, 0, C)]
        found = find_next_slot_per_status(ranges)

        assert found[C] is ranges[1]
        assert NEUTRAL not in found

    def test_empty(self):
        assert find_next_slot_per_status([]) == {S: None, C: None, F: None}


class TestGreenWave:
    def test_no_reports_no_intervals(self, reference_now, tz_name):
        assert build_green_wave_intervals([], reference_now, timezone=tz_name) == []
        assert green_wave_ranges([], reference_now, timezone=tz_name) == []

    def test_single_report_fills_day(self, reference_now, tz_name, at, make_report):
        intervals = build_green_wave_intervals(
            [make_report(C, at(27, 8, 3))], reference_now, timezone=tz_name
        )

        assert len(intervals) == 144
        assert intervals[0].time.strftime("%Y-%m-%d %H:%M") == "2025-11-28 00:00"
        assert intervals[-1].time.strftime("%H:%M") == "23:50"
        assert [i.status for i in intervals].count(C) == 1
        assert intervals[48].status is C

    @pytest.mark.parametrize("day, month, slots", [(30, 3, 138), (26, 10, 150)])
    def test_dst_day_slots_evenly_spaced(
        self, tz_name, at, make_report, day, month, slots
    ):
        reference = at(day, 12, 0, month=month)
        reports = [make_report(S, at(day - 3, 8, 3, month=month))]
        intervals = build_green_wave_intervals(reports, reference, timezone=tz_name)

        assert len(intervals) == slots
        gaps = {b.time - a.time for a, b in zip(intervals, intervals[1:])}
        assert gaps == {timedelta(minutes=10)}
        assert sum(r.duration_minutes for r in compress_to_ranges(intervals)) == 10 * slots

        (stopped,) = [i for i in intervals if i.status is S]
        assert stopped.time.strftime("%H:%M") == "08:00"

    def test_matches_clock_time_across_weekdays(
        self, reference_now, tz_name, at, make_report
    ):
        reports = [
            make_report(S, at(25, 8, 3)),
            make_report(S, at(22, 8, 7)),
            make_report(F, at(26, 8, 9)),
        ]
        intervals = build_green_wave_intervals(reports, reference_now, timezone=tz_name)

        assert intervals[48].time.strftime("%H:%M") == "08:00"
        assert intervals[48].status is S

    def test_lookback_and_future_excluded(self, reference_now, tz_name, at, make_report):
        reports = [
            make_report(S, at(20, 8, 3)),  # before the 7-day lookback
            make_report(C, at(21, 0, 5)),  # first lookback day
            make_report(S, at(28, 9, 0)),  # after reference_now
        ]
        intervals = build_green_wave_intervals(reports, reference_now, timezone=tz_name)

        assert intervals[0].status is C
        assert intervals[48].status is F
        assert intervals[54].status is F

    def test_direction_filter(self, reference_now, tz_name, at, make_report):
        reports = [make_report(S, at(27, 8, 3), direction=DirectionKind.FROM_CENTER)]
        intervals = build_green_wave_intervals(
            reports, reference_now, DirectionKind.TO_CENTER, timezone=tz_name
        )

        assert intervals[48].status is F

    def test_ranges_clipped_to_display_window(
        self, reference_now, tz_name, at, make_report
    ):
        reports = [make_report(S, at(27, 8, 3))]
        ranges = green_wave_ranges(reports, reference_now, timezone=tz_name)

        assert [(r.start_label, r.end_label, r.status) for r in ranges] == [
            ("05:00", "08:00", F),
            ("08:00", "08:10", S),
            ("08:10", "22:00", F),
        ]
        assert sum(r.duration_minutes for r in ranges) == 17 * 60


class TestFormatDuration:
    @pytest.mark.parametrize(
        "minutes, expected",
        [(0, "0 min"), (45, "45 min"), (60, "1 h"), (130, "2 h 10 min"), (1020, "17 h")],
    )
    def test_format(self, minutes, expected):
        assert format_duration(minutes) == expected
