"""
Purpose: Read model for the customer-facing tracking screen.
What it does:
- tracking_view(order, assignments): JSON-ready snapshot
  (status, ISO timeline, driver, active assignment, tracking updates)

Read-only. Nothing here writes to the store.
"""

from __future__ import annotations

from typing import Iterable, Optional

from drivers.models import DriverAssignment
from .models import Order


def _active_assignment(assignments: Iterable[DriverAssignment]) -> Optional[DriverAssignment]:
    # latest open record wins (a reassign revokes the old one first)
    active = None
    for assignment in assignments:
        if assignment.status.is_open:
            active = assignment
    return active


def tracking_view(order: Order, assignments: Iterable[DriverAssignment] = ()) -> dict:
    active = _active_assignment(assignments)
    return {
        "orderId": order.id,
        "status": order.status.value,
        "paymentStatus": order.payment_status.value,
        "driverId": order.driver_id,
        "assignment": None if active is None else {
            "id": active.id,
            "driverId": active.driver_id,
            "status": active.status.value,
        },
        "pickup": order.pickup.coordinate.to_dict(),
        "delivery": order.delivery.coordinate.to_dict(),
        "timeline": order.timeline.to_dict(),
        "total": str(order.pricing.total),
        "cancellationReason": order.cancellation_reason,
        "trackingUpdates": [
            {
                "status": update.status,
                "message": update.message,
                "timestamp": update.timestamp.isoformat(),
            }
            for update in order.tracking
        ],
    }
