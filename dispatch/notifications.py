"""
Purpose: Events published after a commit, and the sinks that receive them.
What it does:
- OrderStatusChanged / AssignmentChanged event records
- LoggingNotifier: default sink, one INFO line per event
- RecordingNotifier: keeps events in memory (tests, simulation)

Any object with publish(event) can stand in (push service, websocket fan-out).
Events are published only after the write they describe has committed.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional, Type

from drivers.models import AssignmentStatus
from orders.models import OrderStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: str
    from_status: OrderStatus
    to_status: OrderStatus
    timestamp: datetime


@dataclass(frozen=True)
class AssignmentChanged:
    order_id: str
    driver_id: str
    assignment_status: AssignmentStatus
    assignment_id: str
    timestamp: datetime


def event_to_dict(event) -> dict:
    data = asdict(event)
    data["type"] = type(event).__name__
    for key, value in data.items():
        if isinstance(value, datetime):
            data[key] = value.isoformat()
        elif hasattr(value, "value"):
            data[key] = value.value
    return data


class LoggingNotifier:
    def publish(self, event) -> None:
        logger.info("event %s", event_to_dict(event))


class RecordingNotifier:
    def __init__(self):
        self.events: List[object] = []
        self._lock = threading.Lock()

    def publish(self, event) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: Type) -> List[object]:
        with self._lock:
            return [event for event in self.events if isinstance(event, event_type)]

    def last(self) -> Optional[object]:
        with self._lock:
            return self.events[-1] if self.events else None

    def clear(self) -> None:
        with self._lock:
            self.events.clear()
