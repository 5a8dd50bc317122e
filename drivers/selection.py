"""
Purpose: Business rules and distance math for choosing the best driver.
What it does:
Accepts a pickup point and a pool of drivers, filters out ineligible drivers,
and ranks the remaining ones by road distance to the pickup (nearest first).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from routing.distance_engine import DistanceEngine
from routing.geofence import GeoValidator, InvalidCoordinate
from routing.models import Coordinate
from .models import Driver, DriverStatus
from .policy import DispatchPolicy, default_dispatch_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedDriver:
    driver: Driver
    distance_meters: float
    duration_seconds: int
    estimated: bool = False


def filter_eligible_drivers(drivers: Sequence[Driver], validator: Optional[GeoValidator] = None) -> List[Driver]:
    """
    Returns only drivers who are available and, when a validator is given,
    currently inside the service area. Input order is kept.
    """
    eligible = []

    for driver in drivers:
        if driver.status != DriverStatus.AVAILABLE:
            continue

        if validator is not None:
            try:
                inside = validator.validate(driver.location)
            except InvalidCoordinate as exc:
                logger.warning("driver %s has an unusable location: %s", driver.id, exc)
                continue
            if not inside:
                logger.debug("driver %s is outside the service area, skipped", driver.id)
                continue

        eligible.append(driver)

    return eligible


def rank_drivers_by_pickup_distance(
    pickup: Coordinate,
    drivers: Sequence[Driver],
    engine: DistanceEngine,
    policy: Optional[DispatchPolicy] = None,
) -> List[RankedDriver]:
    """
    Eligible drivers ranked by driver -> pickup road distance.
    Ties keep input order. Drivers beyond max_pickup_distance_meters are dropped.
    """
    policy = policy or default_dispatch_policy()
    eligible = filter_eligible_drivers(drivers, engine.validator)

    ranked: List[RankedDriver] = []
    chunk = engine.policy.max_destinations
    for start in range(0, len(eligible), chunk):
        batch = eligible[start:start + chunk]
        results = engine.many_to_one([driver.location for driver in batch], pickup)
        for driver, result in zip(batch, results):
            ranked.append(RankedDriver(
                driver=driver,
                distance_meters=result.distance_meters,
                duration_seconds=result.duration_seconds,
                estimated=result.fallback,
            ))

    if policy.max_pickup_distance_meters is not None:
        ranked = [r for r in ranked if r.distance_meters <= policy.max_pickup_distance_meters]

    # sorted() is stable, so equal distances stay in input order
    ranked = sorted(ranked, key=lambda r: r.distance_meters)[:policy.max_candidates]

    logger.debug("ranked drivers for pickup (%s, %s): %s", pickup.lat, pickup.lng,
                 [(r.driver.id, round(r.distance_meters)) for r in ranked])
    return ranked


def nearest_available_driver(
    pickup: Coordinate,
    drivers: Sequence[Driver],
    engine: DistanceEngine,
    policy: Optional[DispatchPolicy] = None,
) -> Optional[RankedDriver]:
    ranked = rank_drivers_by_pickup_distance(pickup, drivers, engine, policy)
    return ranked[0] if ranked else None
