"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Takes an order that needs a driver, ranks the candidate drivers by road distance
to the pickup, and offers the order to one driver at a time until someone accepts.

- assign:   rank candidates, offer to the nearest (ranked tail kept on the offer)
- respond:  accept -> order bound to the driver; decline -> next candidate offered
- reassign: admin override, revokes whatever is open and binds a new driver
- complete / release: close out assignments after delivery / cancellation

Every mutation runs under the store's per-order lock and commits with a version
check, so two drivers can never both end up accepted on one order. Driver status
writes happen under the same lock, in the order the assignment commits landed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from drivers.models import AssignmentStatus, DriverAssignment, DriverStatus
from drivers.policy import DispatchPolicy, default_dispatch_policy
from drivers.registry import DriverNotFound, DriverRegistry
from drivers.selection import filter_eligible_drivers, rank_drivers_by_pickup_distance
from orders.exceptions import VersionConflict
from orders.models import Actor, Order, OrderStatus
from orders.store import InMemoryOrderStore
from routing.distance_engine import DistanceEngine
from .notifications import AssignmentChanged, LoggingNotifier
from .state_machines.driver_state import (
    accept_assignment,
    complete_assignment,
    decline_assignment,
    revoke_assignment,
)
from .state_machines.order_state import IllegalTransition, UnauthorizedActor

logger = logging.getLogger(__name__)


class NoDriverAvailable(Exception):
    """Raised when no eligible driver is left to offer the order to."""

    def __init__(self, order_id: str):
        super().__init__(f"No driver available for order {order_id}")
        self.order_id = order_id


class AssignmentConflict(Exception):
    """
    Raised when the assignment state changed under the caller (already assigned,
    already answered, or a concurrent write won). Safe to retry on a fresh read.
    """


class DispatchCoordinator:
    """
    Args:
        store: record store holding orders + assignments
        engine: DistanceEngine used to rank drivers toward the pickup
        registry: DriverRegistry (locations, availability)
        notifier: anything with publish(event); defaults to LoggingNotifier
        policy: DispatchPolicy (candidate cap, max pickup distance)
        clock: returns the server "now" (timezone-aware)
    """

    def __init__(self, store: InMemoryOrderStore, engine: DistanceEngine, registry: DriverRegistry,
                 notifier=None, policy: Optional[DispatchPolicy] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.engine = engine
        self.registry = registry
        self.notifier = notifier or LoggingNotifier()
        self.policy = policy or default_dispatch_policy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # -------------------------
    # Public API
    # -------------------------

    def assign(self, order_id: str, candidate_driver_ids: Optional[Iterable[str]] = None) -> DriverAssignment:
        """
        Offer the order to the nearest eligible candidate.
        candidate_driver_ids=None means every registered driver.
        """
        order = self.store.get(order_id)
        self._ensure_assignable(order)

        if candidate_driver_ids is None:
            drivers = self.registry.drivers()
        else:
            drivers = self.registry.find(_unique(candidate_driver_ids))

        # ranking talks to the routing provider, so it happens outside the lock
        ranked = rank_drivers_by_pickup_distance(order.pickup.coordinate, drivers, self.engine, self.policy)
        if not ranked:
            logger.info("order %s: no eligible driver among %d candidates", order_id, len(drivers))
            raise NoDriverAvailable(order_id)

        ranked_ids = [r.driver.id for r in ranked]
        with self.store.lock(order_id):
            current = self.store.get(order_id)
            self._ensure_assignable(current)
            offer = DriverAssignment.new(
                order_id, ranked_ids[0], self.clock(),
                remaining_candidates=tuple(ranked_ids[1:]),
            )
            self._commit(current, [offer])

        logger.info("order %s offered to driver %s (%.0f m to pickup, %d more in line)",
                    order_id, offer.driver_id, ranked[0].distance_meters, len(offer.remaining_candidates))
        self._publish(offer)
        return offer

    def respond(self, assignment_id: str, accept: bool) -> DriverAssignment:
        """
        Driver's answer to an offer.
        accept  -> the accepted assignment (order.driver_id set, status untouched)
        decline -> the next offer; NoDriverAvailable once the ranked list is used up
        """
        order_id = self.store.get_assignment(assignment_id).order_id

        with self.store.lock(order_id):
            assignment = self.store.get_assignment(assignment_id)
            if assignment.status != AssignmentStatus.OFFERED:
                raise AssignmentConflict(
                    f"Assignment {assignment_id} is already {assignment.status.value}"
                )
            order = self.store.get(order_id)
            now = self.clock()

            if accept:
                if order.status.is_terminal:
                    raise IllegalTransition(f"Order {order_id} is {order.status.value}")
                accepted = accept_assignment(assignment, now)
                updated = replace(
                    order,
                    driver_id=accepted.driver_id,
                    tracking=order.with_tracking(order.status.value, "Driver has been assigned to your order", now),
                )
                self._commit(order, [accepted], updated)
                # still under the order lock: a reassign cannot free this driver first
                self.registry.set_status(accepted.driver_id, DriverStatus.ON_DELIVERY)
                changed = [accepted]
                result = accepted
            else:
                declined = decline_assignment(assignment, now)
                next_offer = None
                if not order.status.is_terminal:
                    next_offer = self._next_offer(declined, now)
                self._commit(order, [declined] + ([next_offer] if next_offer else []))
                changed = [declined] + ([next_offer] if next_offer else [])
                result = next_offer

        if accept:
            logger.info("order %s accepted by driver %s", order_id, result.driver_id)
        else:
            logger.info("order %s declined by driver %s", order_id, assignment.driver_id)

        for record in changed:
            self._publish(record)

        if result is None:
            raise NoDriverAvailable(order_id)
        return result

    def reassign(self, order_id: str, new_driver_id: str, actor: Actor) -> DriverAssignment:
        """
        Admin override: revoke open assignments, bind new_driver_id directly (accepted).
        """
        if not actor.is_admin:
            raise UnauthorizedActor(f"{actor.role.value} {actor.id} may not reassign order {order_id}")
        self.registry.get(new_driver_id)  # must be a known driver

        with self.store.lock(order_id):
            order = self.store.get(order_id)
            if order.status.is_terminal:
                raise IllegalTransition(f"Order {order_id} is {order.status.value}")

            now = self.clock()
            open_assignments = self.store.open_assignments(order_id)
            revoked = [revoke_assignment(a, now) for a in open_assignments]
            replacement = replace(
                DriverAssignment.new(order_id, new_driver_id, now,
                                     status=AssignmentStatus.ACCEPTED, assigned_by=actor.id),
                responded_at=now,
            )
            updated = replace(
                order,
                driver_id=new_driver_id,
                tracking=order.with_tracking(order.status.value, "Driver has been reassigned to your order", now),
            )
            self._commit(order, revoked + [replacement], updated)

            for previous in open_assignments:
                if previous.status == AssignmentStatus.ACCEPTED and previous.driver_id != new_driver_id:
                    self._free_driver(previous.driver_id)
            self.registry.set_status(new_driver_id, DriverStatus.ON_DELIVERY)

        logger.info("order %s reassigned to driver %s by admin %s", order_id, new_driver_id, actor.id)
        for record in revoked + [replacement]:
            self._publish(record)
        return replacement

    def complete(self, order_id: str) -> Optional[DriverAssignment]:
        """
        After delivery: accepted assignment -> completed, driver available again.
        Returns None when the order never had an accepted driver.
        """
        with self.store.lock(order_id):
            order = self.store.get(order_id)
            if order.status != OrderStatus.DELIVERED:
                raise IllegalTransition(f"Order {order_id} is {order.status.value}, not delivered")
            accepted = self.store.accepted_assignment(order_id)
            if accepted is None:
                return None
            completed = complete_assignment(accepted, self.clock())
            self._commit(order, [completed])
            self._free_driver(completed.driver_id)

        self._publish(completed)
        return completed

    def release(self, order_id: str) -> List[DriverAssignment]:
        """
        After cancellation: every open assignment -> revoked, drivers available again.
        """
        with self.store.lock(order_id):
            order = self.store.get(order_id)
            if order.status != OrderStatus.CANCELLED:
                raise IllegalTransition(f"Order {order_id} is {order.status.value}, not cancelled")
            open_assignments = self.store.open_assignments(order_id)
            if not open_assignments:
                return []
            now = self.clock()
            revoked = [revoke_assignment(a, now) for a in open_assignments]
            self._commit(order, revoked)
            for previous in open_assignments:
                if previous.status == AssignmentStatus.ACCEPTED:
                    self._free_driver(previous.driver_id)

        for record in revoked:
            self._publish(record)
        return revoked

    # -------------------------
    # Internal helpers
    # -------------------------

    def _ensure_assignable(self, order: Order) -> None:
        if order.status.is_terminal:
            raise IllegalTransition(f"Order {order.id} is {order.status.value}")
        if self.store.open_assignments(order.id):
            raise AssignmentConflict(f"Order {order.id} already has an open assignment")

    def _next_offer(self, declined: DriverAssignment, now: datetime) -> Optional[DriverAssignment]:
        """
        Walk the ranked tail until a driver is still eligible. Skipped drivers are
        dropped from the tail carried forward.
        """
        tail = list(declined.remaining_candidates)
        while tail:
            candidate_id = tail.pop(0)
            try:
                driver = self.registry.get(candidate_id)
            except DriverNotFound:
                continue
            if filter_eligible_drivers([driver], self.engine.validator):
                return DriverAssignment.new(declined.order_id, candidate_id, now,
                                            remaining_candidates=tuple(tail))
            logger.debug("order %s: driver %s no longer eligible, skipped", declined.order_id, candidate_id)
        return None

    def _commit(self, order: Order, assignments: Sequence[DriverAssignment],
                updated: Optional[Order] = None) -> Order:
        try:
            return self.store.save(updated or order, expected_version=order.version, assignments=assignments)
        except VersionConflict as exc:
            raise AssignmentConflict(str(exc)) from exc

    def _free_driver(self, driver_id: str) -> None:
        try:
            self.registry.set_status(driver_id, DriverStatus.AVAILABLE)
        except DriverNotFound:
            logger.warning("driver %s is not registered; status not updated", driver_id)

    def _publish(self, assignment: DriverAssignment) -> None:
        self.notifier.publish(AssignmentChanged(
            order_id=assignment.order_id,
            driver_id=assignment.driver_id,
            assignment_status=assignment.status,
            assignment_id=assignment.id,
            timestamp=assignment.responded_at or assignment.assigned_at,
        ))


def _unique(driver_ids: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for driver_id in driver_ids:
        if driver_id not in seen:
            seen.add(driver_id)
            unique.append(driver_id)
    return unique
