"""
Purpose: Value types for the routing capability.
What it does:
- Coordinate (lat, lng)
- DistanceResult (distance/duration between two points + provider status)
- Route (ordered legs + polyline for a multi-stop trip)
- OptimizedRoute (visiting sequence chosen by the route optimizer)

Rule: No HTTP, no OSRM shapes. Everything that leaves the routing package
is one of these types.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class DistanceStatus(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    ZERO_RESULTS = "ZERO_RESULTS"


@dataclass(frozen=True)
class Coordinate:
    """
    A WGS84 point. Validity (finite, in range, inside the service region)
    is checked by routing.geofence.GeoValidator, not here.
    """
    lat: float
    lng: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    @classmethod
    def from_dict(cls, data: dict) -> Coordinate:
        # accepts {"lat", "lng"} bodies and the {"latitude", "longitude"} shape
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lng", data.get("longitude"))
        return cls(lat=lat, lng=lng)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class DistanceResult:
    """
    Immutable distance/duration between two points.

    fallback=True means the numbers come from the great-circle estimate
    and not from the routing provider; callers use it for confidence.
    """
    distance_meters: float
    duration_seconds: int
    status: DistanceStatus = DistanceStatus.OK
    fallback: bool = False

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000.0


@dataclass(frozen=True)
class Route:
    legs: Tuple[DistanceResult, ...]
    polyline: Tuple[Coordinate, ...]
    total_distance: float
    total_duration: int

    @property
    def fallback(self) -> bool:
        return any(leg.fallback for leg in self.legs)


@dataclass(frozen=True)
class OptimizedRoute:
    """
    Output of the route optimizer.

    stops: the input stops in visiting order
    order: input indices of those stops, same order
    legs: origin -> stops[0] -> ... (-> origin when returning)
    """
    stops: Tuple[Coordinate, ...]
    order: Tuple[int, ...]
    legs: Tuple[DistanceResult, ...]
    total_distance: float
    total_duration: int
    return_to_origin: bool = False

    @property
    def fallback(self) -> bool:
        return any(leg.fallback for leg in self.legs)


def sum_legs(legs: List[DistanceResult]) -> Tuple[float, int]:
    """Total distance (m) and duration (s) across legs."""
    total_distance = 0.0
    total_duration = 0
    for leg in legs:
        total_distance += leg.distance_meters
        total_duration += leg.duration_seconds
    return total_distance, total_duration
