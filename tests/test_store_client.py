"""Tests for the report store client (no network: the session is mocked)."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
import requests

from greenwave.reports import DirectionKind, Report, ReportStoreClient, StatusKind


@pytest.fixture
def client():
    return ReportStoreClient(
        base_url="https://store.example.com/",
        api_key="test-key",
        table="traffic_reports",
        rate_limit_rps=1000,
    )


def mock_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestConstruction:
    def test_headers_and_url(self, client):
        assert client.base_url == "https://store.example.com"
        assert client.session.headers["apikey"] == "test-key"
        assert client.session.headers["Authorization"] == "Bearer test-key"

    def test_invalid_url_rejected(self):
        with pytest.raises(ValueError):
            ReportStoreClient(base_url="ftp://store.example.com")

    def test_service_info(self, client):
        info = client.get_service_info()
        assert info["provider"] == "report_store"
        assert info["table"] == "traffic_reports"


class TestBuildQuery:
    def test_street_only(self, client):
        params = client.build_query("Kasztanowa")

        assert params["street"] == "eq.Kasztanowa"
        assert params["order"] == "reported_at.desc"
        assert "direction" not in params
        assert "reported_at" not in params

    def test_all_filters(self, client):
        since = datetime(2025, 11, 21, 6, 40, tzinfo=timezone.utc)
        params = client.build_query(
            "Kasztanowa", DirectionKind.TO_CENTER, since=since, limit=500
        )

        assert params["direction"] == "eq.do centrum"
        assert params["reported_at"] == "gte.2025-11-21T06:40:00+00:00"
        assert params["limit"] == 500


class TestFetch:
    def test_fetch_reports(self, client, sample_rows):
        client.session = Mock()
        client.session.get.return_value = mock_response(sample_rows)

        reports = client.fetch_reports("Kasztanowa")

        assert len(reports) == 4
        assert all(isinstance(r, Report) for r in reports)
        assert reports[0].status is StatusKind.STOPPED

        url = client.session.get.call_args[0][0]
        assert url == "https://store.example.com/rest/v1/traffic_reports"

    def test_malformed_rows_dropped(self, client, sample_rows):
        client.session = Mock()
        client.session.get.return_value = mock_response(
            sample_rows + [{"status": "stoi", "reported_at": "soon"}]
        )

        assert len(client.fetch_reports("Kasztanowa")) == 4

    def test_recent_reports_filter_since(self, client):
        client.session = Mock()
        client.session.get.return_value = mock_response([])
        now = datetime(2025, 11, 28, 6, 40, tzinfo=timezone.utc)

        client.fetch_recent_reports("Kasztanowa", DirectionKind.FROM_CENTER, days=7, now=now)

        params = client.session.get.call_args[1]["params"]
        assert params["reported_at"] == "gte.2025-11-21T06:40:00+00:00"
        assert params["direction"] == "eq.od centrum"

    def test_non_list_response_rejected(self, client):
        client.session = Mock()
        client.session.get.return_value = mock_response({"message": "oops"})

        with pytest.raises(ValueError):
            client.fetch_rows("Kasztanowa")

    def test_http_error_propagates(self, client):
        response = mock_response([], status_code=500)
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        client.session = Mock()
        client.session.get.return_value = response

        with pytest.raises(requests.HTTPError):
            client.fetch_rows("Kasztanowa")


class TestHealthCheck:
    def test_healthy(self, client):
        client.session = Mock()
        client.session.get.return_value = mock_response([])

        assert client.health_check() is True

    def test_unhealthy(self, client):
        response = mock_response([], status_code=503)
        response.raise_for_status.side_effect = requests.HTTPError("503")
        client.session = Mock()
        client.session.get.return_value = response

        assert client.health_check() is False
