"""
Purpose: The record store for Orders and their DriverAssignment children.
What it does:
- Owns order + assignment records (in-memory reference implementation;
  a DB-backed store provides the same methods)
- Per-order mutual exclusion: lock(order_id) (row-level lock equivalent)
- Optimistic concurrency: save(order, expected_version, assignments) is a
  compare-and-swap on Order.version; order and assignment children are
  written atomically or not at all
- Append-only audit trail: assignments are inserted or updated, never deleted

Rule: Store owns persistence and versioning, never business rules.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional

from drivers.models import AssignmentStatus, DriverAssignment
from .exceptions import OrderNotFound, VersionConflict
from .models import Order

logger = logging.getLogger(__name__)


class InMemoryOrderStore:
    """
    Thread-safe in-memory record store.
    """

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._assignments: Dict[str, DriverAssignment] = {}
        self._assignment_ids: Dict[str, List[str]] = {}  # order id -> assignment ids, insertion order

        self._guard = threading.Lock()  # protects the dicts and the lock table
        self._order_locks: Dict[str, threading.RLock] = {}

    # --- Locking ---

    @contextmanager
    def lock(self, order_id: str) -> Iterator[None]:
        """
        Serialize read-modify-write on one order. Re-entrant for the same thread.
        """
        with self._guard:
            order_lock = self._order_locks.setdefault(order_id, threading.RLock())
        with order_lock:
            yield

    # --- Orders ---

    def create(self, order: Order) -> Order:
        """
        Insert a new order at version 1.
        Idempotent: creating an id that already exists returns the stored record.
        """
        with self._guard:
            existing = self._orders.get(order.id)
            if existing is not None:
                return existing
            stored = replace(order, version=1)
            self._orders[order.id] = stored
            self._assignment_ids[order.id] = []
        logger.info("order %s created", order.id)
        return stored

    def get(self, order_id: str) -> Order:
        with self._guard:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def save(self, order: Order, expected_version: int,
             assignments: Iterable[DriverAssignment] = ()) -> Order:
        """
        Compare-and-swap: commit `order` (and assignment children) only if the
        stored version still equals expected_version. Returns the stored order
        with its new version.
        """
        assignments = list(assignments)
        for assignment in assignments:
            if assignment.order_id != order.id:
                raise ValueError(f"Assignment {assignment.id} belongs to order {assignment.order_id}, not {order.id}")

        with self.lock(order.id):
            with self._guard:
                current = self._orders.get(order.id)
                if current is None:
                    raise OrderNotFound(order.id)
                if current.version != expected_version:
                    raise VersionConflict(order.id, expected_version, current.version)

                stored = replace(order, version=current.version + 1)
                self._orders[order.id] = stored
                for assignment in assignments:
                    if assignment.id not in self._assignments:
                        self._assignment_ids[order.id].append(assignment.id)
                    self._assignments[assignment.id] = assignment
        return stored

    # --- Assignments ---

    def get_assignment(self, assignment_id: str) -> DriverAssignment:
        with self._guard:
            assignment = self._assignments.get(assignment_id)
        if assignment is None:
            raise OrderNotFound(assignment_id)
        return assignment

    def assignments_for(self, order_id: str) -> List[DriverAssignment]:
        with self._guard:
            ids = list(self._assignment_ids.get(order_id, []))
            return [self._assignments[assignment_id] for assignment_id in ids]

    def open_assignments(self, order_id: str) -> List[DriverAssignment]:
        return [a for a in self.assignments_for(order_id) if a.status.is_open]

    def accepted_assignment(self, order_id: str) -> Optional[DriverAssignment]:
        for assignment in self.assignments_for(order_id):
            if assignment.status == AssignmentStatus.ACCEPTED:
                return assignment
        return None
