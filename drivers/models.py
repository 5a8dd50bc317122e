"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the structure of a Driver, their status, and the DriverAssignment
record that binds a driver to an order, without relying on any ORM.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple
import uuid

from routing.models import Coordinate


class DriverStatus(str, Enum):
    """
    Standardizes the state a driver can be in.
    """
    AVAILABLE = "available"
    ON_DELIVERY = "on_delivery"
    OFFLINE = "offline"


class AssignmentStatus(str, Enum):
    OFFERED = "offered"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    REVOKED = "revoked"

    @property
    def is_open(self) -> bool:
        # still binds the order to this driver (pending answer or active)
        return self in (AssignmentStatus.OFFERED, AssignmentStatus.ACCEPTED)


@dataclass(frozen=True)
class Driver:
    """
    A purely stateless representation of a Driver at a specific point in time.
    """
    id: str
    location: Coordinate
    status: DriverStatus

    last_ping_at: datetime | None = None

    @classmethod
    def new(
        cls,
        driver_id: str,
        lat: float,
        lng: float,
        status: str | DriverStatus = DriverStatus.OFFLINE,
        last_ping_at: datetime | None = None
    ) -> Driver:
        if isinstance(status, str):
            status = DriverStatus(status)

        return cls(
            id=driver_id,
            location=Coordinate(lat, lng),
            status=status,
            last_ping_at=last_ping_at or datetime.now(timezone.utc)
        )


@dataclass(frozen=True)
class DriverAssignment:
    """
    Binding between an order and a driver.

    Lifecycle: offered -> accepted | declined | revoked, accepted -> completed | revoked.
    Records are never deleted; superseded ones become revoked (audit trail).
    remaining_candidates is the ranked tail still to be offered if this
    driver declines.
    """
    id: str
    order_id: str
    driver_id: str
    assigned_at: datetime
    status: AssignmentStatus = AssignmentStatus.OFFERED
    assigned_by: Optional[str] = None
    remaining_candidates: Tuple[str, ...] = field(default_factory=tuple)
    responded_at: Optional[datetime] = None

    @staticmethod # Factory method to create an assignment with a fresh id
    def new(order_id: str, driver_id: str, assigned_at: datetime, *,
            status: AssignmentStatus = AssignmentStatus.OFFERED,
            assigned_by: Optional[str] = None,
            remaining_candidates: Tuple[str, ...] = ()) -> DriverAssignment:
        return DriverAssignment(
            id=str(uuid.uuid4()),
            order_id=order_id,
            driver_id=driver_id,
            assigned_at=assigned_at,
            status=status,
            assigned_by=assigned_by,
            remaining_candidates=tuple(remaining_candidates),
        )
