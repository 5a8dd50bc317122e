"""
Purpose: Live view of the driver fleet.
What it does:
- Holds the latest Driver snapshot per id (location pings + status)
- update_location validates the ping before accepting it
- Snapshots are frozen; every update swaps in a new Driver

Thread-safe: pings, offers and accepts arrive on different threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from routing.geofence import GeoValidator, check_coordinate
from routing.models import Coordinate
from .models import Driver, DriverStatus

logger = logging.getLogger(__name__)


class DriverNotFound(KeyError):
    """Raised when a driver id was never registered."""


class DriverRegistry:
    def __init__(self, validator: Optional[GeoValidator] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.validator = validator
        self.clock = clock
        self._drivers: Dict[str, Driver] = {}
        self._lock = threading.Lock()

    def register(self, driver: Driver) -> Driver:
        check_coordinate(driver.location)
        with self._lock:
            self._drivers[driver.id] = driver
        logger.info("driver %s registered (%s)", driver.id, driver.status.value)
        return driver

    def get(self, driver_id: str) -> Driver:
        with self._lock:
            driver = self._drivers.get(driver_id)
        if driver is None:
            raise DriverNotFound(driver_id)
        return driver

    def find(self, driver_ids: Iterable[str]) -> List[Driver]:
        """Known drivers among driver_ids, input order kept. Unknown ids are dropped."""
        with self._lock:
            return [self._drivers[driver_id] for driver_id in driver_ids if driver_id in self._drivers]

    def update_location(self, driver_id: str, location: Coordinate) -> Driver:
        """
        Malformed pings raise InvalidCoordinate. An out-of-area ping is still
        recorded (the driver really is there); selection skips such drivers.
        """
        check_coordinate(location)
        if self.validator is not None and not self.validator.validate(location):
            logger.info("driver %s pinged outside the service area", driver_id)
        return self._swap(driver_id, location=location, last_ping_at=self.clock())

    def set_status(self, driver_id: str, status: DriverStatus | str) -> Driver:
        if isinstance(status, str):
            status = DriverStatus(status)
        return self._swap(driver_id, status=status)

    def drivers(self, status: Optional[DriverStatus] = None) -> List[Driver]:
        with self._lock:
            snapshot = list(self._drivers.values())
        if status is None:
            return snapshot
        return [driver for driver in snapshot if driver.status == status]

    def _swap(self, driver_id: str, **changes) -> Driver:
        with self._lock:
            current = self._drivers.get(driver_id)
            if current is None:
                raise DriverNotFound(driver_id)
            updated = replace(current, **changes)
            self._drivers[driver_id] = updated
        return updated
