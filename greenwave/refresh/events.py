"""
New-report notifications.

A transport-agnostic publish/subscribe bus: whatever delivers "a report was
inserted" notifications (database change feed, webhook, message queue)
publishes ReportEvent objects here, and subscribers re-run the pipeline.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..common import get_logger
from ..reports.models import DirectionKind, StatusKind
from ..reports.timestamps import parse_timestamp

logger = get_logger("refresh.events")


@dataclass(frozen=True)
class ReportEvent:
    """A report was added to the store."""

    street: str
    direction: Optional[DirectionKind] = None
    status: Optional[StatusKind] = None
    reported_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportEvent":
        """Create from an inserted row."""
        return cls(
            street=data["street"],
            direction=DirectionKind.parse(data.get("direction")),
            status=StatusKind.parse(data.get("status")),
            reported_at=parse_timestamp(data["reported_at"])
            if data.get("reported_at")
            else None,
        )


EventCallback = Callable[[ReportEvent], None]


class Subscription:
    """Handle returned by ReportEventBus.subscribe."""

    def __init__(self, bus: "ReportEventBus", callback: EventCallback, street: Optional[str]):
        self.bus = bus
        self.callback = callback
        self.street = street
        self.active = True

    def matches(self, event: ReportEvent) -> bool:
        return self.street is None or self.street == event.street

    def unsubscribe(self) -> None:
        """Stop receiving events."""
        if self.active:
            self.bus._remove(self)
            self.active = False


class ReportEventBus:
    """In-process publish/subscribe for new-report events."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()
        self.logger = logger

    def subscribe(self, callback: EventCallback, street: Optional[str] = None) -> Subscription:
        """
        Register a callback.

        Args:
            callback: Called with every matching ReportEvent
            street: Only events for this street (all streets when None)

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, callback, street)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ReportEvent) -> int:
        """
        Deliver an event to every matching subscriber.

        A failing callback is logged and does not stop delivery to the others.

        Returns:
            Number of callbacks invoked successfully
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(event)
                delivered += 1
            except Exception as e:
                self.logger.error(
                    f"Report event subscriber failed: {e}",
                    exc_info=True,
                    extra={"street": event.street},
                )

        return delivered
