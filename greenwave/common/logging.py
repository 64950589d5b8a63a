"""
Logging utilities for the greenwave traffic engine.

JSON records (python-json-logger) in production, plain text in development.
Every record carries the service, environment and traffic timezone; the
``log_*`` helpers build the ``extra=`` payloads for the events the engine
emits: report store requests, aggregation stages, status votes and refresh
runs.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional
from pythonjsonlogger import jsonlogger

from .config import config

SERVICE_NAME = "greenwave"


def _wire(value: Any) -> Any:
    """Enum members are logged by their stored value ("stoi", "do centrum")."""
    return getattr(value, "value", value)


class StructuredFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service-wide fields to every record."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = (
            datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"
        )
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = config.environment
        # Buckets and weekdays are computed on this wall clock
        log_record["traffic_timezone"] = config.timezone

        log_record.setdefault("level", record.levelname)


def setup_logging(
    logger_name: Optional[str] = None,
    level: Optional[str] = None,
    enable_structured: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure a logger from ``config.logging``.

    A logger that already has a handler is returned as is unless an override
    is passed, so module-level ``get_logger`` calls stay cheap.

    Args:
        logger_name: Name of the logger (defaults to root)
        level: Log level override
        enable_structured: Structured logging override

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers and level is None and enable_structured is None:
        return logger

    log_level = getattr(logging, (level or config.logging.level).upper())
    structured = (
        enable_structured
        if enable_structured is not None
        else config.logging.enable_structured_logging
    )

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if structured:
        handler.setFormatter(
            StructuredFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(logging.Formatter(config.logging.format_str))

    logger.setLevel(log_level)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_api_request(
    provider: str,
    endpoint: str,
    method: str = "GET",
    status_code: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Structured entry for a report store request.

    Args:
        provider: Remote service name
        endpoint: URL called
        method: HTTP method
        status_code: Response status code, if any
        duration_ms: Request duration in milliseconds
        **kwargs: Additional context (street, filters, error)
    """
    entry = {
        "event": "api_request",
        "provider": provider,
        "endpoint": endpoint,
        "method": method,
    }
    if status_code is not None:
        entry["status_code"] = status_code
    if duration_ms is not None:
        entry["duration_ms"] = round(duration_ms, 2)

    entry.update(kwargs)
    return entry


def log_data_processing(
    stage: str,
    records_processed: int,
    records_failed: int = 0,
    duration_ms: Optional[float] = None,
    direction: Any = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Structured entry for an aggregation stage (grid, prediction, green wave).

    Args:
        stage: Stage name
        records_processed: Reports (or slots) handled
        records_failed: Reports dropped, e.g. for malformed timestamps
        duration_ms: Stage duration in milliseconds
        direction: Direction the stage was restricted to, if any
        **kwargs: Additional context
    """
    total = records_processed + records_failed
    entry = {
        "event": "data_processing",
        "stage": stage,
        "records_processed": records_processed,
        "records_failed": records_failed,
        "success_rate": records_processed / total if total > 0 else 0,
    }
    if direction is not None:
        entry["direction"] = _wire(direction)
    if duration_ms is not None:
        entry["duration_ms"] = round(duration_ms, 2)

    entry.update(kwargs)
    return entry


def log_status_vote(
    stage: str,
    counts: Mapping[Any, int],
    status: Any = None,
    **kwargs,
) -> Dict[str, Any]:
    """
    Structured entry for a majority vote over reports.

    Args:
        stage: Where the vote happened (e.g. "current_status")
        counts: Votes per status
        status: Winning status, None when nobody voted
        **kwargs: Additional context (window, direction)
    """
    entry = {
        "event": "status_vote",
        "stage": stage,
        "counts": {_wire(kind): count for kind, count in counts.items() if count},
        "votes": sum(counts.values()),
        "status": _wire(status),
    }
    entry.update(kwargs)
    return entry


def log_refresh_run(
    run_id: str,
    trigger: str,
    status: Any,
    report_count: Optional[int] = None,
    duration_ms: Optional[float] = None,
    **kwargs,
) -> Dict[str, Any]:
    """Structured entry for a finished pipeline refresh."""
    entry = {
        "event": "refresh_run",
        "run_id": run_id,
        "trigger": trigger,
        "status": _wire(status),
    }
    if report_count is not None:
        entry["report_count"] = report_count
    if duration_ms is not None:
        entry["duration_ms"] = round(duration_ms, 2)

    entry.update(kwargs)
    return entry


class TimedLogger:
    """Context manager timing an engine operation; failures logged at error."""

    def __init__(self, logger: logging.Logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = datetime.now(timezone.utc)
        self.logger.debug(
            f"Starting {self.operation}",
            extra={"event": "operation_start", "operation": self.operation, **self.context},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (
            datetime.now(timezone.utc) - self.start_time
        ).total_seconds() * 1000
        extra = {
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 2),
            **self.context,
        }

        if exc_type is None:
            self.logger.debug(
                f"Completed {self.operation}",
                extra={"event": "operation_complete", "success": True, **extra},
            )
        else:
            self.logger.error(
                f"Failed {self.operation}: {exc_val}",
                extra={
                    "event": "operation_failed",
                    "success": False,
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val),
                    **extra,
                },
            )


# Global logger instance
logger = setup_logging(SERVICE_NAME)


def get_logger(name: str) -> logging.Logger:
    """Logger for an engine component, named ``greenwave.<name>``."""
    return setup_logging(f"{SERVICE_NAME}.{name}")
