"""
Report store client for the greenwave traffic engine.

Fetches crowdsourced traffic reports from a PostgREST-style endpoint
(``/rest/v1/<table>``) with retry logic and rate limiting.
"""

import time
import requests
from typing import Dict, List, Optional, Any
from datetime import datetime, timedelta, timezone

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..common import config, get_logger, TimedLogger, log_api_request
from .models import DirectionKind, Report, load_reports

logger = get_logger("reports.store_client")


class ReportStoreClient:
    """Client for the traffic report store REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        rate_limit_rps: Optional[float] = None,
    ):
        """
        Initialize report store client.

        Args:
            base_url: Report store base URL
            api_key: API key sent as ``apikey`` and bearer token
            table: Reports table name
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
            rate_limit_rps: Rate limit in requests per second
        """
        store_config = config.report_store
        self.base_url = (base_url or store_config.base_url or "").rstrip("/")
        self.api_key = api_key or store_config.api_key
        self.table = table or store_config.table
        self.timeout = timeout or store_config.timeout_seconds
        self.max_retries = max_retries or store_config.max_retries
        self.rate_limit_rps = rate_limit_rps or store_config.requests_per_second

        # Rate limiting
        self._last_request_time = 0.0
        self._min_request_interval = (
            1.0 / self.rate_limit_rps if self.rate_limit_rps > 0 else 0
        )

        # Session with retry strategy
        self.session = self._create_session()

        self.logger = logger

        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid report store URL: {self.base_url!r}")

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            backoff_factor=config.report_store.backoff_factor,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        if self.api_key:
            session.headers.update(
                {
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                }
            )
        session.headers.update({"Accept": "application/json"})

        return session

    def _rate_limit(self):
        """Apply rate limiting between requests."""
        if self._min_request_interval > 0:
            current_time = time.time()
            time_since_last = current_time - self._last_request_time

            if time_since_last < self._min_request_interval:
                sleep_time = self._min_request_interval - time_since_last
                time.sleep(sleep_time)

            self._last_request_time = time.time()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _make_request(self, url: str, params: Dict[str, Any]) -> Any:
        """
        Make HTTP request with retry logic.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            JSON response data
        """
        self._rate_limit()

        start_time = time.time()

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            duration_ms = (time.time() - start_time) * 1000

            response.raise_for_status()

            self.logger.debug(
                "Report store request successful",
                extra=log_api_request(
                    provider="report_store",
                    endpoint=url,
                    method="GET",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                ),
            )

            return response.json()

        except requests.exceptions.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000

            self.logger.error(
                f"Report store request failed: {e}",
                extra=log_api_request(
                    provider="report_store",
                    endpoint=url,
                    method="GET",
                    status_code=getattr(e.response, "status_code", None)
                    if getattr(e, "response", None) is not None
                    else None,
                    duration_ms=duration_ms,
                    error=str(e),
                ),
            )
            raise

    def build_query(
        self,
        street: str,
        direction: Optional[DirectionKind] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build PostgREST filter parameters for a report query.

        Args:
            street: Street identifier
            direction: Only reports in this direction
            since: Only reports at or after this instant
            limit: Maximum number of rows

        Returns:
            Query parameters
        """
        params: Dict[str, Any] = {
            "select": "status,reported_at,direction,street",
            "street": f"eq.{street}",
            "order": "reported_at.desc",
        }
        if direction is not None:
            params["direction"] = f"eq.{DirectionKind(direction).value}"
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            params["reported_at"] = f"gte.{since.isoformat()}"
        if limit is not None:
            params["limit"] = int(limit)
        return params

    def fetch_rows(
        self,
        street: str,
        direction: Optional[DirectionKind] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch raw report rows for a street.

        Returns:
            List of row dictionaries, newest first
        """
        url = f"{self.base_url}/rest/v1/{self.table}"
        params = self.build_query(street, direction, since, limit)

        with TimedLogger(self.logger, f"fetch_rows {street}"):
            rows = self._make_request(url, params)

            if not isinstance(rows, list):
                raise ValueError(
                    f"Unexpected report store response: {type(rows).__name__}"
                )

            self.logger.info(
                "Retrieved report rows",
                extra={
                    "street": street,
                    "direction": params.get("direction"),
                    "row_count": len(rows),
                },
            )

            return rows

    def fetch_reports(
        self,
        street: str,
        direction: Optional[DirectionKind] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        strict: bool = False,
    ) -> List[Report]:
        """
        Fetch reports for a street as Report objects.

        Rows with malformed timestamps are dropped with a warning unless
        ``strict`` is set, in which case TimestampParseError propagates.
        """
        rows = self.fetch_rows(street, direction, since, limit)
        return load_reports(rows, strict=strict)

    def fetch_recent_reports(
        self,
        street: str,
        direction: Optional[DirectionKind] = None,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> List[Report]:
        """Fetch the last ``days`` days of reports for a street."""
        now = now or datetime.now(timezone.utc)
        return self.fetch_reports(street, direction, since=now - timedelta(days=days))

    def health_check(self) -> bool:
        """
        Check if the report store is reachable.

        Returns:
            True if service is healthy
        """
        try:
            self._make_request(
                f"{self.base_url}/rest/v1/{self.table}",
                {"select": "reported_at", "limit": 1},
            )
            self.logger.info("Report store health check passed")
            return True

        except requests.RequestException as e:
            self.logger.error(f"Report store health check failed: {e}")
            return False

    def get_service_info(self) -> Dict[str, Any]:
        """
        Get report store client information.

        Returns:
            Service metadata
        """
        return {
            "provider": "report_store",
            "base_url": self.base_url,
            "table": self.table,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "rate_limit_rps": self.rate_limit_rps,
        }


def create_report_store_client() -> ReportStoreClient:
    """Create report store client with default configuration."""
    return ReportStoreClient()
