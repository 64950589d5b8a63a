"""
Refresh run tracking for the greenwave traffic engine.

Keeps a bounded, in-memory history of pipeline refresh runs so operators can
see when the displayed data was last recomputed and why a refresh failed.
"""

import threading
import uuid
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..common import config, get_logger

logger = get_logger("state.run_state")


class ProcessingStatus(Enum):
    """Processing status enumeration."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RefreshRun:
    """State information for one pipeline refresh."""

    run_id: str
    trigger: str  # 'schedule', 'event', 'manual'
    status: ProcessingStatus
    start_time: datetime
    end_time: Optional[datetime] = None
    processed_records: int = 0
    failed_records: int = 0
    metadata: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000

    def complete(self, processed_records: int, failed_records: int = 0, **metadata):
        """Mark the run as completed."""
        self.status = ProcessingStatus.COMPLETED
        self.processed_records = processed_records
        self.failed_records = failed_records
        self.metadata = {**(self.metadata or {}), **metadata}
        self.end_time = datetime.now(timezone.utc)

    def fail(self, error: BaseException):
        """Mark the run as failed."""
        self.status = ProcessingStatus.FAILED
        self.error_message = str(error)
        self.end_time = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = asdict(self)
        result["status"] = self.status.value
        result["start_time"] = self.start_time.isoformat()
        if self.end_time:
            result["end_time"] = self.end_time.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefreshRun":
        """Create from dictionary."""
        data = data.copy()
        data["status"] = ProcessingStatus(data["status"])
        data["start_time"] = datetime.fromisoformat(data["start_time"])
        if data.get("end_time"):
            data["end_time"] = datetime.fromisoformat(data["end_time"])
        return cls(**data)


class RunStateStore:
    """Thread-safe, bounded history of refresh runs."""

    def __init__(self, history_size: Optional[int] = None):
        """
        Initialize run state store.

        Args:
            history_size: Number of runs kept (oldest dropped first)
        """
        self.history_size = history_size or config.refresh.history_size
        self._runs: deque = deque(maxlen=self.history_size)
        self._lock = threading.Lock()
        self.logger = logger

    def save_run(self, run: RefreshRun) -> None:
        """Record a run, replacing an earlier record with the same id."""
        with self._lock:
            for index, existing in enumerate(self._runs):
                if existing.run_id == run.run_id:
                    self._runs[index] = run
                    break
            else:
                self._runs.append(run)

        self.logger.debug(
            f"Saved refresh run {run.run_id}",
            extra={"run_id": run.run_id, "status": run.status.value},
        )

    def get_run(self, run_id: str) -> Optional[RefreshRun]:
        """Look up a run by id."""
        with self._lock:
            for run in self._runs:
                if run.run_id == run_id:
                    return run
        return None

    def list_runs(self, status: Optional[ProcessingStatus] = None) -> List[RefreshRun]:
        """Runs oldest first, optionally filtered by status."""
        with self._lock:
            runs = list(self._runs)
        if status is not None:
            runs = [run for run in runs if run.status == status]
        return runs

    def last_successful_run(self) -> Optional[RefreshRun]:
        """Most recent completed run."""
        completed = self.list_runs(ProcessingStatus.COMPLETED)
        return completed[-1] if completed else None

    def get_statistics(self) -> Dict[str, Any]:
        """Counts per status and the last success time."""
        runs = self.list_runs()
        last = self.last_successful_run()
        return {
            "total_runs": len(runs),
            "by_status": {
                status.value: sum(1 for run in runs if run.status == status)
                for status in ProcessingStatus
            },
            "last_success": last.end_time.isoformat() if last and last.end_time else None,
        }


def create_refresh_run(trigger: str, metadata: Optional[Dict[str, Any]] = None) -> RefreshRun:
    """Create a new running refresh run."""
    return RefreshRun(
        run_id=f"refresh_{uuid.uuid4().hex[:12]}",
        trigger=trigger,
        status=ProcessingStatus.RUNNING,
        start_time=datetime.now(timezone.utc),
        metadata=metadata,
    )
