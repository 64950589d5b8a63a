"""Tests for the report data model."""

import pytest

from greenwave.reports import (
    NEUTRAL,
    STATUS_PRIORITY,
    DirectionKind,
    Report,
    StatusKind,
    TimestampParseError,
    load_reports,
)


class TestStatusKind:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("stoi", StatusKind.STOPPED),
            ("toczy_sie", StatusKind.CRAWLING),
            ("jedzie", StatusKind.FLOWING),
            (" jedzie ", StatusKind.FLOWING),
            ("flowing", StatusKind.FLOWING),
            (StatusKind.STOPPED, StatusKind.STOPPED),
        ],
    )
    def test_parse_known(self, value, expected):
        assert StatusKind.parse(value) is expected

    @pytest.mark.parametrize("value", ["korek", "", None, 3])
    def test_parse_unknown(self, value):
        assert StatusKind.parse(value) is None

    def test_priority_order(self):
        assert STATUS_PRIORITY == (
            StatusKind.STOPPED,
            StatusKind.CRAWLING,
            StatusKind.FLOWING,
        )

    def test_neutral_is_not_a_status(self):
        assert not isinstance(NEUTRAL, StatusKind)
        assert NEUTRAL.value == "neutral"


class TestDirectionKind:
    def test_parse_wire_values(self):
        assert DirectionKind.parse("do centrum") is DirectionKind.TO_CENTER
        assert DirectionKind.parse("od centrum") is DirectionKind.FROM_CENTER

    def test_parse_member_names(self):
        assert DirectionKind.parse("to_center") is DirectionKind.TO_CENTER

    def test_parse_unknown(self):
        assert DirectionKind.parse("sideways") is None


class TestReport:
    def test_from_dict(self, sample_rows):
        report = Report.from_dict(sample_rows[0])
        assert report.status is StatusKind.STOPPED
        assert report.direction is DirectionKind.TO_CENTER
        assert report.street == "Kasztanowa"
        assert report.reported_at.tzinfo is not None

    def test_unrecognized_status_kept_as_none(self, sample_rows):
        report = Report.from_dict(sample_rows[3])
        assert report.status is None

    def test_missing_timestamp_raises(self):
        with pytest.raises(TimestampParseError):
            Report.from_dict({"status": "stoi", "street": "Kasztanowa"})

    def test_to_dict(self, sample_rows):
        data = Report.from_dict(sample_rows[1]).to_dict()
        assert data["status"] == "jedzie"
        assert data["direction"] == "do centrum"
        assert data["reported_at"].startswith("2025-11-27T06:12:30.125")


class TestLoadReports:
    def test_loads_all_rows(self, sample_rows):
        reports = load_reports(sample_rows)
        assert len(reports) == 4
        assert [r.status for r in reports][:3] == [
            StatusKind.STOPPED,
            StatusKind.FLOWING,
            StatusKind.CRAWLING,
        ]

    def test_strict_propagates_malformed_timestamp(self, sample_rows):
        rows = sample_rows + [{"status": "stoi", "reported_at": "garbage"}]
        with pytest.raises(TimestampParseError):
            load_reports(rows, strict=True)

    def test_lenient_drops_malformed_timestamp(self, sample_rows):
        rows = [{"status": "stoi", "reported_at": "garbage"}] + sample_rows
        reports = load_reports(rows, strict=False)
        assert len(reports) == 4
