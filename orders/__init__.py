"""
Purpose: Package entry + stable exports.
What it does:

Marks orders as a Python package and re-exports the public API so other
modules can do:

from orders import Order, OrderStatus, InMemoryOrderStore

Should not contain business logic.
"""
from .models import (
    Actor,
    ActorRole,
    Address,
    Earnings,
    Order,
    OrderStatus,
    PaymentStatus,
    Pricing,
    Timeline,
    TrackingUpdate,
)
from .exceptions import OrderNotFound, VersionConflict
from .store import InMemoryOrderStore
from .tracking import tracking_view

__all__ = [
    "Actor",
    "ActorRole",
    "Address",
    "Earnings",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "Pricing",
    "Timeline",
    "TrackingUpdate",
    "OrderNotFound",
    "VersionConflict",
    "InMemoryOrderStore",
    "tracking_view",
]
