"""
Periodic and event-driven pipeline refresh.

The scheduler re-runs the whole pipeline on a fixed interval and whenever a
new-report event arrives, and publishes the latest snapshot. A failed refresh
is recorded and the previous snapshot stays in place.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

from ..common import config, get_logger, log_refresh_run
from ..state import RefreshRun, RunStateStore, create_refresh_run
from .events import ReportEvent, ReportEventBus, Subscription
from .pipeline import TrafficPipeline, TrafficSnapshot

logger = get_logger("refresh.scheduler")

SnapshotListener = Callable[[TrafficSnapshot], None]


class RefreshScheduler:
    """Runs a TrafficPipeline periodically and on demand."""

    def __init__(
        self,
        pipeline: TrafficPipeline,
        interval_seconds: Optional[float] = None,
        run_store: Optional[RunStateStore] = None,
    ):
        """
        Initialize refresh scheduler.

        Args:
            pipeline: Pipeline to run
            interval_seconds: Seconds between scheduled refreshes (default 60)
            run_store: Where refresh runs are recorded
        """
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds or config.refresh.interval_seconds
        self.run_store = run_store or RunStateStore()

        self._latest: Optional[TrafficSnapshot] = None
        self._latest_lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[SnapshotListener] = []
        self._subscriptions: List[Subscription] = []

        self.logger = logger

    @property
    def latest(self) -> Optional[TrafficSnapshot]:
        """Most recent successful snapshot."""
        with self._latest_lock:
            return self._latest

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_listener(self, listener: SnapshotListener) -> None:
        """Call ``listener`` with every new snapshot."""
        self._listeners.append(listener)

    def trigger(self, trigger: str = "manual") -> RefreshRun:
        """
        Run the pipeline now, synchronously.

        Args:
            trigger: Why the refresh ran ('schedule', 'event', 'manual')

        Returns:
            The recorded RefreshRun
        """
        run = create_refresh_run(trigger, metadata={"street": self.pipeline.street})
        self.run_store.save_run(run)

        # One refresh at a time; overlapping triggers queue up
        with self._run_lock:
            try:
                snapshot = self.pipeline.run()
            except Exception as e:
                run.fail(e)
                self.run_store.save_run(run)
                self.logger.error(
                    f"Refresh failed: {e}",
                    exc_info=True,
                    extra=log_refresh_run(
                        run.run_id,
                        trigger,
                        run.status,
                        duration_ms=run.duration_ms,
                        street=self.pipeline.street,
                    ),
                )
                return run

            with self._latest_lock:
                self._latest = snapshot

        run.complete(processed_records=snapshot.report_count)
        self.run_store.save_run(run)

        self.logger.info(
            "Refresh complete",
            extra=log_refresh_run(
                run.run_id,
                trigger,
                run.status,
                report_count=snapshot.report_count,
                duration_ms=run.duration_ms,
                street=self.pipeline.street,
            ),
        )

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(f"Snapshot listener failed: {e}", exc_info=True)

        return run

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.trigger("schedule")
            if self._stop_event.wait(self.interval_seconds):
                break

    def start(self) -> None:
        """Start periodic refreshing in a background thread (first run immediately)."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="greenwave-refresh", daemon=True
        )
        self._thread.start()
        self.logger.info(
            "Refresh scheduler started",
            extra={"interval_seconds": self.interval_seconds},
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop periodic refreshing and drop event subscriptions."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

        self.logger.info("Refresh scheduler stopped")

    def subscribe_to(self, bus: ReportEventBus, street: Optional[str] = None) -> Subscription:
        """
        Re-run the pipeline whenever a new report event arrives.

        Args:
            bus: Event bus to listen on
            street: Only react to this street (defaults to the pipeline's street)
        """

        def on_event(event: ReportEvent) -> None:
            self.trigger("event")

        subscription = bus.subscribe(on_event, street or self.pipeline.street)
        self._subscriptions.append(subscription)
        return subscription

    def get_status(self) -> Dict[str, Any]:
        """Scheduler status for health endpoints."""
        latest = self.latest
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "last_snapshot": latest.computed_at.isoformat() if latest else None,
            "runs": self.run_store.get_statistics(),
        }
