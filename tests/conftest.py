import threading
from datetime import datetime, timedelta, timezone

import pytest

from dispatch.dispatcher import DispatchCoordinator
from dispatch.notifications import RecordingNotifier
from dispatch.state_machines.order_state import OrderLifecycle
from drivers.models import Driver, DriverStatus
from drivers.registry import DriverRegistry
from orders.models import Address
from orders.store import InMemoryOrderStore
from routing.distance_engine import DistanceEngine, haversine_meters
from routing.geofence import GeoValidator
from routing.matrix_adapter import DistanceCache
from routing.models import Coordinate
from routing.osrm_client import OSRMError

# Manila
RIZAL_PARK = Coordinate(14.5995, 120.9842)
QUIAPO = Coordinate(14.6042, 120.9822)
MAKATI = Coordinate(14.5547, 121.0244)
TOKYO = Coordinate(35.6762, 139.6503)

ROAD_FACTOR_IN_FAKE = 1.25
SPEED_IN_FAKE_MPS = 8.0


class FakeProvider:
    """
    Deterministic stand-in for OSRM: road distance = haversine * 1.25, 8 m/s.
    Knobs:
        fail_code: raise OSRMError(code) on every call
        table_fail_code: only the table call fails
        null_cells: destination indices returned as null in the table row
    """

    def __init__(self, fail_code=None, table_fail_code=None, null_cells=()):
        self.fail_code = fail_code
        self.table_fail_code = table_fail_code
        self.null_cells = set(null_cells)
        self.route_calls = 0
        self.table_calls = 0
        self._lock = threading.Lock()

    @staticmethod
    def road(a, b):
        distance = haversine_meters(a, b) * ROAD_FACTOR_IN_FAKE
        return distance, distance / SPEED_IN_FAKE_MPS

    def compute_route(self, coords, geometry=False):
        with self._lock:
            self.route_calls += 1
        if self.fail_code:
            raise OSRMError("provider down", code=self.fail_code)
        legs = []
        for a, b in zip(coords, coords[1:]):
            distance, duration = self.road(a, b)
            legs.append({"distance": distance, "duration": duration})
        return {
            "distance": sum(leg["distance"] for leg in legs),
            "duration": sum(leg["duration"] for leg in legs),
            "legs": legs,
            "geometry": list(coords) if geometry else [],
        }

    def compute_table(self, sources, destinations):
        with self._lock:
            self.table_calls += 1
        code = self.table_fail_code or self.fail_code
        if code:
            raise OSRMError("table down", code=code)
        distances, durations = [], []
        for source in sources:
            distance_row, duration_row = [], []
            for index, destination in enumerate(destinations):
                if index in self.null_cells:
                    distance_row.append(None)
                    duration_row.append(None)
                    continue
                distance, duration = self.road(source, destination)
                distance_row.append(distance)
                duration_row.append(duration)
            distances.append(distance_row)
            durations.append(duration_row)
        return {"distances": distances, "durations": durations}


class FixedClock:
    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def validator():
    return GeoValidator()


@pytest.fixture
def engine(provider, validator):
    return DistanceEngine(provider, validator=validator)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def registry(validator, clock):
    return DriverRegistry(validator=validator, clock=clock)


@pytest.fixture
def lifecycle(store, notifier, clock, validator):
    return OrderLifecycle(store, notifier=notifier, clock=clock, validator=validator)


@pytest.fixture
def dispatcher(store, engine, registry, notifier, clock):
    return DispatchCoordinator(store, engine, registry, notifier=notifier, clock=clock)


@pytest.fixture
def new_order(lifecycle):
    """Factory: a pending Rizal Park -> Quiapo order."""
    counter = {"n": 0}

    def _make(order_id=None, subtotal="500.00", delivery_fee="49.00"):
        counter["n"] += 1
        return lifecycle.create_order(
            order_id=order_id or f"order-{counter['n']}",
            customer_id="cust-1",
            vendor_id="vendor-1",
            pickup=Address(RIZAL_PARK, "Rizal Park"),
            delivery=Address(QUIAPO, "Quiapo Church"),
            subtotal=subtotal,
            delivery_fee=delivery_fee,
        )

    return _make


def available_driver(driver_id, lat, lng):
    return Driver.new(driver_id, lat, lng, DriverStatus.AVAILABLE)


def uncached_engine(provider, validator=None):
    return DistanceEngine(provider, validator=validator, cache=DistanceCache(ttl_seconds=0))
