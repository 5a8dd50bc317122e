"""
Purpose: Distance/duration measurement for the dispatch core.
What it does:
- point_to_point: one origin -> one destination
- one_to_many: one origin -> up to 25 destinations (distance matrix row)
- many_to_one: up to 25 origins -> one destination (drivers -> pickup)
- route: origin -> waypoints (in the given order) -> destination

Every call goes to the routing provider first. If the provider errors or
times out we do NOT retry: we fall back immediately to a great-circle
(haversine) estimate scaled by the policy's road factor, and mark the result
fallback=True. The fallback is pure math so a quote/route request stays
bounded even under a total provider outage.

Provider-native shapes (OSRM dicts) stop here; callers only see
DistanceResult / Route.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import requests

from routing.geofence import GeoValidator
from routing.matrix_adapter import DistanceCache
from routing.models import Coordinate, DistanceResult, DistanceStatus, Route, sum_legs
from routing.osrm_client import OSRMError
from routing.policy import RoutingPolicy, default_routing_policy

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0

# Anything a provider can throw at us that means "no usable answer".
# Malformed payloads (missing keys, short rows) count as provider failures too.
PROVIDER_ERRORS = (
    OSRMError,
    requests.RequestException,
    TimeoutError,
    ConnectionError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
)

# OSRM codes that are an actual verdict about the coordinates rather than an outage
_VERDICTS = {
    "NoRoute": DistanceStatus.ZERO_RESULTS,
    "NoSegment": DistanceStatus.NOT_FOUND,
    "InvalidValue": DistanceStatus.NOT_FOUND,
}


class LimitExceeded(ValueError):
    """Raised when a batch exceeds the wire limit (25 destinations / 8 waypoints)."""

    def __init__(self, what: str, count: int, limit: int):
        super().__init__(f"Too many {what}: {count} given, at most {limit} allowed")
        self.what = what
        self.count = count
        self.limit = limit


class DistanceUnavailable(Exception):
    """Raised when neither the provider nor the fallback can produce a distance."""


def haversine_meters(origin: Coordinate, destination: Coordinate) -> float:
    """Great-circle distance in meters."""
    lat1, lat2 = math.radians(origin.lat), math.radians(destination.lat)
    dlat = lat2 - lat1
    dlng = math.radians(destination.lng - origin.lng)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    if a > 1.0:
        # float noise for antipodal points; NaN passes through untouched
        a = 1.0
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


class DistanceEngine:
    """
    Args:
        provider: routing provider with compute_route(coords, geometry=...) and
                  compute_table(sources, destinations) (e.g. OSRMClient)
        validator: GeoValidator applied to every input coordinate. When None,
                   coordinates are used as-is (offline tooling only).
        policy: RoutingPolicy (road factor, limits, timeouts, pool size)
        cache: DistanceCache; defaults to one sized by policy.cache_ttl_seconds / cache_max_entries
    """

    def __init__(self, provider, validator: Optional[GeoValidator] = None,
                 policy: Optional[RoutingPolicy] = None, cache: Optional[DistanceCache] = None):
        self.provider = provider
        self.validator = validator
        self.policy = policy or default_routing_policy()
        self.cache = cache if cache is not None else DistanceCache(self.policy.cache_ttl_seconds,
                                                                       max_entries=self.policy.cache_max_entries)

    # -------------------------
    # Public API
    # -------------------------

    def point_to_point(self, origin: Coordinate, destination: Coordinate) -> DistanceResult:
        self._check(origin)
        self._check(destination)

        cached = self.cache.get(origin, destination, self.policy.profile)
        if cached is not None:
            return cached

        try:
            data = self.provider.compute_route([origin, destination])
            result = self._wrap(data["distance"], data["duration"])
        except PROVIDER_ERRORS as exc:
            return self._fallback_after(exc, origin, destination)

        self.cache.put(origin, destination, self.policy.profile, result)
        return result

    def one_to_many(self, origin: Coordinate, destinations: Sequence[Coordinate]) -> List[DistanceResult]:
        """
        Results come back in input order. Each destination falls back on its
        own; one bad cell never fails the batch.
        """
        self._enforce_limit("destinations", len(destinations), self.policy.max_destinations)
        self._check(origin)
        for destination in destinations:
            self._check(destination)
        if not destinations:
            return []

        results: List[Optional[DistanceResult]] = [None] * len(destinations)
        missing: List[int] = []
        for index, destination in enumerate(destinations):
            cached = self.cache.get(origin, destination, self.policy.profile)
            if cached is not None:
                results[index] = cached
            else:
                missing.append(index)

        if missing:
            for index, result in zip(missing, self._resolve_row(origin, [destinations[i] for i in missing])):
                results[index] = result

        return results

    def many_to_one(self, origins: Sequence[Coordinate], destination: Coordinate) -> List[DistanceResult]:
        """Independent point_to_point calls on the bounded pool, input order kept."""
        self._enforce_limit("origins", len(origins), self.policy.max_destinations)
        self._check(destination)
        for origin in origins:
            self._check(origin)
        return self._parallel([(origin, destination) for origin in origins])

    def route(self, origin: Coordinate, destination: Coordinate,
              waypoints: Sequence[Coordinate] = ()) -> Route:
        """
        Ordered multi-stop route. Waypoints are visited exactly in the order
        given; reordering is RouteOptimizer's job.
        """
        self._enforce_limit("waypoints", len(waypoints), self.policy.max_waypoints)
        coordinates = [origin, *waypoints, destination]
        for coordinate in coordinates:
            self._check(coordinate)

        try:
            data = self.provider.compute_route(coordinates, geometry=True)
            legs = [self._wrap(leg["distance"], leg["duration"]) for leg in data["legs"]]
            if len(legs) != len(coordinates) - 1:
                raise ValueError(f"provider returned {len(legs)} legs for {len(coordinates)} points")
            polyline = tuple(data.get("geometry") or coordinates)
        except PROVIDER_ERRORS as exc:
            status = self._status_for(exc)
            logger.warning("route provider failed (%s); using great-circle legs", exc)
            legs = [self.estimate(a, b, status) for a, b in zip(coordinates, coordinates[1:])]
            polyline = tuple(coordinates)

        total_distance, total_duration = sum_legs(legs)
        return Route(
            legs=tuple(legs),
            polyline=polyline,
            total_distance=total_distance,
            total_duration=total_duration,
        )

    def estimate(self, origin: Coordinate, destination: Coordinate,
                 status: DistanceStatus = DistanceStatus.OK) -> DistanceResult:
        """
        Network-free estimate: haversine * road_factor, duration at the
        policy's fallback speed. Never blocks.
        """
        distance = haversine_meters(origin, destination) * self.policy.road_factor
        if not math.isfinite(distance):
            raise DistanceUnavailable(
                f"No distance for ({origin.lat}, {origin.lng}) -> ({destination.lat}, {destination.lng})"
            )
        duration = int(math.floor(distance / self.policy.fallback_speed_mps))
        return DistanceResult(distance_meters=distance, duration_seconds=duration, status=status, fallback=True)

    # -------------------------
    # Internal helpers
    # -------------------------

    def _check(self, coordinate: Coordinate) -> None:
        if self.validator is not None:
            self.validator.require(coordinate)

    @staticmethod
    def _enforce_limit(what: str, count: int, limit: int) -> None:
        if count > limit:
            raise LimitExceeded(what, count, limit)

    @staticmethod
    def _wrap(distance, duration) -> DistanceResult:
        distance = float(distance)
        duration = float(duration)
        if not (math.isfinite(distance) and math.isfinite(duration)):
            raise ValueError("provider returned a non-finite distance/duration")
        return DistanceResult(distance_meters=distance, duration_seconds=int(math.floor(duration)))

    @staticmethod
    def _status_for(exc: Exception) -> DistanceStatus:
        code = getattr(exc, "code", None)
        return _VERDICTS.get(code, DistanceStatus.OK)

    def _fallback_after(self, exc: Exception, origin: Coordinate, destination: Coordinate) -> DistanceResult:
        logger.warning(
            "distance provider failed for (%s, %s) -> (%s, %s): %s; using great-circle estimate",
            origin.lat, origin.lng, destination.lat, destination.lng, exc,
        )
        return self.estimate(origin, destination, self._status_for(exc))

    def _resolve_row(self, origin: Coordinate, destinations: List[Coordinate]) -> List[DistanceResult]:
        """
        One table call for the whole row. A null cell means the provider found
        no route for that pair (ZERO_RESULTS + estimate). If the table call
        itself fails, every destination is resolved independently on the pool.
        """
        try:
            table = self.provider.compute_table([origin], destinations)
            distance_row = table["distances"][0]
            duration_row = table["durations"][0]
        except PROVIDER_ERRORS as exc:
            logger.warning("distance matrix failed (%s); resolving %d destinations individually",
                           exc, len(destinations))
            return self._parallel([(origin, destination) for destination in destinations])

        results: List[DistanceResult] = []
        for index, destination in enumerate(destinations):
            distance = distance_row[index] if index < len(distance_row) else None
            duration = duration_row[index] if index < len(duration_row) else None
            if distance is None or duration is None:
                results.append(self.estimate(origin, destination, DistanceStatus.ZERO_RESULTS))
                continue
            try:
                result = self._wrap(distance, duration)
            except (TypeError, ValueError) as exc:
                results.append(self._fallback_after(exc, origin, destination))
                continue
            self.cache.put(origin, destination, self.policy.profile, result)
            results.append(result)
        return results

    def _parallel(self, pairs: List[Tuple[Coordinate, Coordinate]]) -> List[DistanceResult]:
        if not pairs:
            return []
        if len(pairs) == 1:
            return [self.point_to_point(*pairs[0])]
        workers = min(self.policy.max_workers, len(pairs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda pair: self.point_to_point(*pair), pairs))
