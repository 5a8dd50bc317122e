import csv
import logging
import os
import random
from decimal import Decimal
from typing import List

import numpy as np
import pandas as pd

from dispatch import DispatchCoordinator, NoDriverAvailable, OrderLifecycle, RecordingNotifier
from dispatch.notifications import AssignmentChanged
from drivers.models import Driver
from drivers.registry import DriverRegistry
from orders.models import Actor, Address, OrderStatus
from orders.store import InMemoryOrderStore
from pricing.fees import FeeCalculator, VendorLocation
from routing.distance_engine import DistanceEngine
from routing.geofence import GeoValidator
from routing.models import Coordinate
from routing.osrm_client import OSRMClient, OSRMError
from routing.policy import RoutingPolicy, routing_policy_from_env

CENTER_LAT = 14.5995
CENTER_LNG = 120.9842


class OfflineProvider:
    """
    Stand-in when no OSRM_BASE_URL is configured: every call fails, so the
    engine runs entirely on its great-circle estimate.
    """

    def compute_route(self, coords, geometry=False):
        raise OSRMError("OSRM not configured", code="Offline")

    def compute_table(self, sources, destinations):
        raise OSRMError("OSRM not configured", code="Offline")


def build_provider(policy: RoutingPolicy):
    if os.getenv("OSRM_BASE_URL"):
        return OSRMClient.from_policy(policy)
    print("OSRM_BASE_URL not set; running on fallback distance estimates.")
    return OfflineProvider()


def mock_vendors(count=15) -> List[VendorLocation]:
    lats = CENTER_LAT + np.random.uniform(-0.04, 0.04, count)
    lngs = CENTER_LNG + np.random.uniform(-0.04, 0.04, count)
    return [
        VendorLocation(f"V-{i + 1:03d}", Coordinate(round(lat, 6), round(lng, 6)), radius_km=8.0)
        for i, (lat, lng) in enumerate(zip(lats, lngs))
    ]


def mock_drivers(count=20) -> List[Driver]:
    drivers = []
    for i in range(count):
        lat = CENTER_LAT + (random.random() - 0.5) * 0.12
        lng = CENTER_LNG + (random.random() - 0.5) * 0.12
        status = "available" if random.random() < 0.85 else "offline"
        drivers.append(Driver.new(f"DRV-{i + 1:03d}", round(lat, 6), round(lng, 6), status))
    return drivers


def run_simulation(num_orders=30, acceptance_probability=0.7):
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("=== STARTING END-TO-END DISPATCH SIMULATION ===")

    # 1. Configure system
    validator = GeoValidator()
    policy = routing_policy_from_env()
    engine = DistanceEngine(build_provider(policy), validator=validator, policy=policy)
    store = InMemoryOrderStore()
    notifier = RecordingNotifier()
    registry = DriverRegistry(validator=validator)
    lifecycle = OrderLifecycle(store, notifier=notifier, validator=validator)
    dispatcher = DispatchCoordinator(store, engine, registry, notifier=notifier)
    fees = FeeCalculator(engine)

    vendors = mock_vendors()
    for driver in mock_drivers():
        registry.register(driver)
    print(f"Loaded {len(vendors)} vendors and {len(registry.drivers())} drivers.\n")

    rows = []
    for order_index in range(num_orders):
        order_id = f"o_{order_index + 1:04d}"
        customer = Coordinate(
            round(CENTER_LAT + np.random.uniform(-0.04, 0.04), 6),
            round(CENTER_LNG + np.random.uniform(-0.04, 0.04), 6),
        )

        # 2. Customer picks the nearest vendor that delivers here
        in_range = fees.vendors_in_range(customer, vendors)
        if not in_range:
            rows.append({"order_id": order_id, "outcome": "NO_VENDOR_IN_RANGE"})
            continue
        choice = in_range[0]
        vendor = next(v for v in vendors if v.vendor_id == choice.vendor_id)

        order = lifecycle.create_order(
            order_id=order_id,
            customer_id=f"c_{order_index + 1:04d}",
            vendor_id=vendor.vendor_id,
            pickup=Address(vendor.coordinate),
            delivery=Address(customer),
            subtotal=Decimal(str(round(random.uniform(150, 1200), 2))),
            delivery_fee=choice.quote.fee,
        )

        # 3. Vendor prepares
        vendor_actor = Actor.vendor(vendor.vendor_id)
        for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY):
            order = lifecycle.transition(order, status, vendor_actor)

        # 4. Offer loop: each offered driver accepts with some probability
        offers = 0
        try:
            assignment = dispatcher.assign(order_id)
            offers += 1
            while True:
                accepted = random.random() < acceptance_probability
                assignment = dispatcher.respond(assignment.id, accept=accepted)
                if accepted:
                    break
                offers += 1
        except NoDriverAvailable:
            order = lifecycle.transition(store.get(order_id), OrderStatus.CANCELLED, Actor.admin("ops"),
                                         reason="no driver available")
            dispatcher.release(order_id)
            rows.append({"order_id": order_id, "vendor_id": vendor.vendor_id, "offers": offers,
                         "fee": str(order.pricing.delivery_fee), "outcome": "CANCELLED"})
            print(f"[FAILED] {order_id} -> no driver accepted after {offers} offers")
            continue

        # 5. Driver delivers
        driver_actor = Actor.driver(assignment.driver_id)
        order = store.get(order_id)
        for status in (OrderStatus.PICKED_UP, OrderStatus.DELIVERED):
            order = lifecycle.transition(order, status, driver_actor)
        dispatcher.complete(order_id)

        rows.append({
            "order_id": order_id,
            "vendor_id": vendor.vendor_id,
            "driver_id": assignment.driver_id,
            "offers": offers,
            "distance_km": round(choice.quote.distance_km, 2),
            "fee": str(order.pricing.delivery_fee),
            "eta_minutes": choice.quote.eta_minutes,
            "estimated": choice.quote.estimated,
            "driver_earnings": str(order.earnings.driver_earnings),
            "outcome": "DELIVERED",
        })
        print(f"[SUCCESS] {order_id} -> {assignment.driver_id} after {offers} offer(s), fee {order.pricing.delivery_fee}")

    # 6. Report
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "dispatch_results.csv")
    df = pd.DataFrame(rows)
    df.to_csv(output_path, index=False, quoting=csv.QUOTE_MINIMAL)

    print("\n=== SIMULATION COMPLETE ===")
    print(df["outcome"].value_counts().to_string())
    if "offers" in df:
        print(f"Mean offers per order: {df['offers'].mean():.2f}")
    print(f"Assignment events published: {len(notifier.of_type(AssignmentChanged))}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    run_simulation()
