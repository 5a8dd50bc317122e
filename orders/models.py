"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (ids, addresses, pricing, earnings, status, timeline, driver, version)
- Pricing / Earnings (money, immutable once the order exists)
- Timeline (one timestamp per lifecycle phase, set once, never cleared)
- Actor (who is asking: customer / vendor / driver / admin / system)

Defines enums/constants:
- OrderStatus = pending | confirmed | preparing | ready | picked_up | delivered | cancelled
- PaymentStatus = pending | paid | failed | refunded
- ActorRole

Every model is frozen: a change is a new instance (dataclasses.replace) that
the record store commits against the previous version.

Rule: No routing calls, no state-machine rules. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from routing.models import Coordinate


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ActorRole(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    DRIVER = "driver"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @classmethod
    def customer(cls, actor_id: str) -> Actor:
        return cls(actor_id, ActorRole.CUSTOMER)

    @classmethod
    def vendor(cls, actor_id: str) -> Actor:
        return cls(actor_id, ActorRole.VENDOR)

    @classmethod
    def driver(cls, actor_id: str) -> Actor:
        return cls(actor_id, ActorRole.DRIVER)

    @classmethod
    def admin(cls, actor_id: str) -> Actor:
        return cls(actor_id, ActorRole.ADMIN)

    @classmethod
    def system(cls, actor_id: str = "system") -> Actor:
        return cls(actor_id, ActorRole.SYSTEM)


@dataclass(frozen=True)
class Address:
    coordinate: Coordinate
    text: str = ""


@dataclass(frozen=True)
class Pricing:
    """
    total == subtotal + tax + delivery_fee + platform_fee, fixed at creation.
    Refunds are recorded elsewhere, never by editing total.
    """
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    platform_fee: Decimal
    total: Decimal

    def __post_init__(self):
        expected = self.subtotal + self.tax + self.delivery_fee + self.platform_fee
        if self.total != expected:
            raise ValueError(f"Pricing total {self.total} != components sum {expected}")

    @property
    def net_of_tax(self) -> Decimal:
        return self.total - self.tax


@dataclass(frozen=True)
class Earnings:
    vendor_earnings: Decimal
    driver_earnings: Decimal
    platform_commission: Decimal

    @property
    def total(self) -> Decimal:
        return self.vendor_earnings + self.driver_earnings + self.platform_commission


# status -> timeline field stamped when the transition commits
PHASE_FIELDS = {
    OrderStatus.PENDING: "ordered",
    OrderStatus.CONFIRMED: "confirmed",
    OrderStatus.PREPARING: "preparing",
    OrderStatus.READY: "ready",
    OrderStatus.PICKED_UP: "picked_up",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
}


@dataclass(frozen=True)
class Timeline:
    ordered: datetime
    confirmed: Optional[datetime] = None
    preparing: Optional[datetime] = None
    ready: Optional[datetime] = None
    picked_up: Optional[datetime] = None
    delivered: Optional[datetime] = None
    cancelled: Optional[datetime] = None

    def at(self, status: OrderStatus) -> Optional[datetime]:
        return getattr(self, PHASE_FIELDS[status])

    def stamp(self, status: OrderStatus, when: datetime) -> Timeline:
        """Return a copy with the phase set; an already-set phase is kept."""
        if self.at(status) is not None:
            return self
        return replace(self, **{PHASE_FIELDS[status]: when})

    def latest(self) -> datetime:
        stamped = [value for value in (getattr(self, name) for name in PHASE_FIELDS.values()) if value is not None]
        return max(stamped)

    def to_dict(self) -> dict:
        return {
            name: (value.isoformat() if value is not None else None)
            for name, value in ((name, getattr(self, name)) for name in PHASE_FIELDS.values())
        }


@dataclass(frozen=True)
class TrackingUpdate:
    status: str
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class Order:
    """
    Represents a single delivery order. version is owned by the record store.
    """

    id: str
    customer_id: str
    vendor_id: str
    pickup: Address
    delivery: Address
    pricing: Pricing
    earnings: Earnings
    timeline: Timeline

    status: OrderStatus = OrderStatus.PENDING
    driver_id: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING

    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[Actor] = None

    # append-only
    tracking: Tuple[TrackingUpdate, ...] = field(default_factory=tuple)

    version: int = 0

    def with_tracking(self, status: str, message: str, timestamp: datetime) -> Tuple[TrackingUpdate, ...]:
        return self.tracking + (TrackingUpdate(status=status, message=message, timestamp=timestamp),)
