"""
Purpose: The order lifecycle state machine.
What it does:
- create_order: builds a pending Order (pricing, earnings, timeline.ordered) and stores it
- transition: moves an order one step forward, or to cancelled, enforcing who may do it

pending -> confirmed -> preparing -> ready -> picked_up -> delivered
any non-terminal state -> cancelled

Rules:
- Status never moves backwards. Re-applying the current status is a no-op for
  any actor (stored order returned, no role check, no write, no event).
- Each timeline phase is stamped once, from the injected clock, never
  earlier than the phase before it.
- Every write is a compare-and-swap on order.version via the record store.
- OrderStatusChanged is published after the commit, never before.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from orders.models import Actor, ActorRole, Address, Order, OrderStatus, Timeline
from orders.store import InMemoryOrderStore
from pricing.earnings import build_pricing, split_earnings
from pricing.policy import PricingPolicy, default_pricing_policy
from routing.geofence import GeoValidator
from ..notifications import LoggingNotifier, OrderStatusChanged

logger = logging.getLogger(__name__)


class IllegalTransition(Exception):
    """Raised when a status change is not allowed from the order's current status."""


class UnauthorizedActor(IllegalTransition):
    """Raised when the transition exists but this actor may not perform it."""


NEXT_STATUS: Dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.PICKED_UP,
    OrderStatus.PICKED_UP: OrderStatus.DELIVERED,
}

# who may move an order INTO a given status
ALLOWED_ROLES = {
    OrderStatus.CONFIRMED: {ActorRole.VENDOR, ActorRole.ADMIN, ActorRole.SYSTEM},
    OrderStatus.PREPARING: {ActorRole.VENDOR, ActorRole.ADMIN, ActorRole.SYSTEM},
    OrderStatus.READY: {ActorRole.VENDOR, ActorRole.ADMIN, ActorRole.SYSTEM},
    OrderStatus.PICKED_UP: {ActorRole.DRIVER, ActorRole.ADMIN},
    OrderStatus.DELIVERED: {ActorRole.DRIVER, ActorRole.ADMIN},
}

EARLY_CANCEL_ROLES = {ActorRole.CUSTOMER, ActorRole.VENDOR, ActorRole.ADMIN}

TRACKING_MESSAGES = {
    OrderStatus.PENDING: "Order placed",
    OrderStatus.CONFIRMED: "Order confirmed by restaurant",
    OrderStatus.PREPARING: "Your order is being prepared",
    OrderStatus.READY: "Order ready for pickup",
    OrderStatus.PICKED_UP: "Driver has picked up your order",
    OrderStatus.DELIVERED: "Order delivered successfully",
}


def check_transition(order: Order, target: OrderStatus, actor: Actor, reason: Optional[str] = None) -> None:
    """
    Pure rule check. Raises IllegalTransition / UnauthorizedActor, returns None when allowed.
    Assumes order.status != target (the no-op case is handled by the caller).
    """
    if order.status.is_terminal:
        raise IllegalTransition(f"Order {order.id} is {order.status.value}; no further transitions")

    if target == OrderStatus.CANCELLED:
        _check_cancel(order, actor, reason)
        return

    if NEXT_STATUS.get(order.status) != target:
        raise IllegalTransition(
            f"Order {order.id} cannot go from {order.status.value} to {target.value}"
        )

    if actor.role not in ALLOWED_ROLES[target]:
        raise UnauthorizedActor(f"{actor.role.value} {actor.id} may not mark order {order.id} {target.value}")

    if actor.role == ActorRole.DRIVER and actor.id != order.driver_id:
        raise UnauthorizedActor(f"Driver {actor.id} is not assigned to order {order.id}")


def _check_cancel(order: Order, actor: Actor, reason: Optional[str]) -> None:
    before_pickup = order.status in (
        OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY,
    )
    if before_pickup:
        if actor.role not in EARLY_CANCEL_ROLES:
            raise UnauthorizedActor(f"{actor.role.value} {actor.id} may not cancel order {order.id}")
        return

    # picked up: only an admin, and it has to be explained
    if not actor.is_admin:
        raise UnauthorizedActor(f"Only an admin may cancel order {order.id} after pickup")
    if not reason or not reason.strip():
        raise UnauthorizedActor(f"Cancelling order {order.id} after pickup requires a reason")


class OrderLifecycle:
    """
    Args:
        store: record store (InMemoryOrderStore or equivalent)
        notifier: anything with publish(event); defaults to LoggingNotifier
        clock: returns the server "now" (timezone-aware)
        validator: GeoValidator for addresses at creation; None skips the area check
        pricing_policy: money rules for create_order
    """

    def __init__(self, store: InMemoryOrderStore, notifier=None,
                 clock: Optional[Callable[[], datetime]] = None,
                 validator: Optional[GeoValidator] = None,
                 pricing_policy: Optional[PricingPolicy] = None):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.validator = validator
        self.pricing_policy = pricing_policy or default_pricing_policy()

    def create_order(self, order_id: str, customer_id: str, vendor_id: str,
                     pickup: Address, delivery: Address, subtotal, delivery_fee,
                     platform_fee=None) -> Order:
        """
        Pricing is fixed here (total can never change later). Creating an id that
        already exists returns the stored order unchanged.
        """
        if self.validator is not None:
            self.validator.require(pickup.coordinate)
            self.validator.require(delivery.coordinate)

        pricing = build_pricing(subtotal, delivery_fee, self.pricing_policy, platform_fee)
        now = self.clock()
        order = Order(
            id=order_id,
            customer_id=customer_id,
            vendor_id=vendor_id,
            pickup=pickup,
            delivery=delivery,
            pricing=pricing,
            earnings=split_earnings(pricing, self.pricing_policy),
            timeline=Timeline(ordered=now),
        )
        order = replace(order, tracking=order.with_tracking(
            OrderStatus.PENDING.value, TRACKING_MESSAGES[OrderStatus.PENDING], now))
        return self.store.create(order)

    def transition(self, order: Order, target: OrderStatus | str, actor: Actor,
                   reason: Optional[str] = None) -> Order:
        """
        Commit order -> target. `order` is the caller's snapshot; if it is stale
        the store raises VersionConflict and the caller retries on a fresh read.

        Reapplying the status the order already has returns the stored order
        unchanged for any actor, with no role check, stamp or event. Retries and
        racing duplicates of a committed move return quietly.
        """
        target = OrderStatus(target)

        with self.store.lock(order.id):
            current = self.store.get(order.id)
            if current.status == target:
                return current

            check_transition(current, target, actor, reason)

            # never stamp a phase earlier than the one before it
            when = max(self.clock(), current.timeline.latest())

            if target == OrderStatus.CANCELLED:
                message = f"Order cancelled by {actor.role.value}"
                if reason:
                    message = f"{message}: {reason}"
                updated = replace(
                    current,
                    status=target,
                    cancellation_reason=reason,
                    cancelled_by=actor,
                )
            else:
                message = TRACKING_MESSAGES[target]
                updated = replace(current, status=target)

            updated = replace(
                updated,
                timeline=current.timeline.stamp(target, when),
                tracking=current.with_tracking(target.value, message, when),
            )
            stored = self.store.save(updated, expected_version=order.version)

        logger.info("order %s %s -> %s by %s %s", order.id, current.status.value,
                    target.value, actor.role.value, actor.id)
        self.notifier.publish(OrderStatusChanged(
            order_id=order.id,
            from_status=current.status,
            to_status=target,
            timestamp=when,
        ))
        return stored
