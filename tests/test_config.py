"""Tests for configuration loading, logging helpers and timezone resolution."""

import json
import logging
from datetime import date, time

import pytest
import pytz
from pydantic import ValidationError

from greenwave.common import (
    clock_minutes,
    config,
    get_logger,
    load_config,
    local_moment,
    log_data_processing,
    log_refresh_run,
    log_status_vote,
    reload_config,
    resolve_timezone,
)
from greenwave.common.config import GreenWaveConfig, GridConfig, RefreshConfig
from greenwave.common.logging import StructuredFormatter
from greenwave.reports import DirectionKind, StatusKind
from greenwave.state import ProcessingStatus


class TestLoadConfig:
    def test_defaults(self, monkeypatch):
        for name in ("GRID_BUCKET_MINUTES", "TRAFFIC_TIMEZONE", "REPORT_STORE_URL"):
            monkeypatch.delenv(name, raising=False)

        app_config = load_config()

        assert app_config.grid.day_start_hour == 5
        assert app_config.grid.day_end_hour == 22
        assert app_config.grid.bucket_minutes == 30
        assert app_config.prediction.interval_minutes == 5
        assert app_config.green_wave.interval_minutes == 10
        assert app_config.refresh.current_status_lookbacks == [20, 30, 60]
        assert app_config.timezone == "Europe/Warsaw"
        assert app_config.report_store.base_url is None

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TRAFFIC_TIMEZONE", "UTC")
        monkeypatch.setenv("CURRENT_STATUS_LOOKBACKS", "15, 45")
        monkeypatch.setenv("REPORT_STORE_URL", "https://store.example.com/")

        app_config = load_config()

        assert app_config.timezone == "UTC"
        assert app_config.refresh.current_status_lookbacks == [15, 45]
        assert app_config.report_store.base_url == "https://store.example.com"

    def test_bad_lookbacks_rejected(self, monkeypatch):
        monkeypatch.setenv("CURRENT_STATUS_LOOKBACKS", "20,abc")
        with pytest.raises(ValueError):
            load_config()

    def test_reload_updates_shared_config(self, monkeypatch):
        prediction = config.prediction
        monkeypatch.setenv("PREDICTION_HORIZON_COUNT", "7")
        try:
            assert reload_config() is config
            assert config.prediction.horizon_count == 7
            assert prediction.horizon_count != 7
        finally:
            monkeypatch.undo()
            reload_config()

        assert config.prediction.horizon_count == load_config().prediction.horizon_count


class TestClockMinutes:
    def test_time_and_text(self):
        assert clock_minutes(time(7, 30)) == 450
        assert clock_minutes("05:00") == 300
        assert clock_minutes("24:00") == 1440

    @pytest.mark.parametrize("value", ["24:30", "7", "07:5x"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            clock_minutes(value)


class TestSectionValidation:
    def test_grid_hours(self):
        with pytest.raises(ValidationError):
            GridConfig(day_start_hour=22, day_end_hour=5)

    def test_grid_bucket_width(self):
        with pytest.raises(ValidationError):
            GridConfig(bucket_minutes=25)

    def test_green_wave_window(self):
        with pytest.raises(ValidationError):
            GreenWaveConfig(window_start="22:00", window_end="05:00")
        with pytest.raises(ValidationError):
            GreenWaveConfig(window_start="5 o'clock")

    def test_lookbacks_must_widen(self):
        with pytest.raises(ValidationError):
            RefreshConfig(current_status_lookbacks=[60, 20])


class TestTimezone:
    def test_known_zone(self):
        assert resolve_timezone("Europe/Warsaw").zone == "Europe/Warsaw"

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons") is pytz.utc

    def test_midnight_moment(self):
        tz = resolve_timezone("Europe/Warsaw")
        moment = local_moment(date(2025, 11, 28), 24 * 60, tz)
        assert moment.strftime("%Y-%m-%d %H:%M") == "2025-11-29 00:00"


class TestLogging:
    def test_logger_namespace(self):
        assert get_logger("tests").name == "greenwave.tests"

    def test_data_processing_entry(self):
        entry = log_data_processing("weekly_grid", records_processed=3, records_failed=1)

        assert entry["event"] == "data_processing"
        assert entry["success_rate"] == 0.75

    def test_data_processing_direction_wire_value(self):
        entry = log_data_processing(
            "green_wave", records_processed=4, direction=DirectionKind.TO_CENTER
        )

        assert entry["direction"] == "do centrum"
        assert "direction" not in log_data_processing("green_wave", records_processed=4)

    def test_status_vote_entry(self):
        entry = log_status_vote(
            "current_status",
            {StatusKind.STOPPED: 2, StatusKind.CRAWLING: 0, StatusKind.FLOWING: 1},
            StatusKind.STOPPED,
            window_minutes=20,
        )

        assert entry["event"] == "status_vote"
        assert entry["counts"] == {"stoi": 2, "jedzie": 1}
        assert entry["votes"] == 3
        assert entry["status"] == "stoi"
        assert entry["window_minutes"] == 20

    def test_status_vote_without_votes(self):
        entry = log_status_vote("current_status", {})

        assert entry["votes"] == 0
        assert entry["status"] is None

    def test_refresh_run_entry(self):
        entry = log_refresh_run(
            "run-1", "scheduled", ProcessingStatus.COMPLETED, report_count=12, duration_ms=3.14159
        )

        assert entry["event"] == "refresh_run"
        assert entry["status"] == "completed"
        assert entry["report_count"] == 12
        assert entry["duration_ms"] == 3.14

    def test_structured_record_fields(self):
        record = logging.LogRecord(
            "greenwave.tests", logging.INFO, __file__, 1, "refreshed", None, None
        )
        payload = json.loads(StructuredFormatter("%(message)s").format(record))

        assert payload["message"] == "refreshed"
        assert payload["service"] == "greenwave"
        assert payload["traffic_timezone"] == config.timezone
        assert payload["level"] == "INFO"
