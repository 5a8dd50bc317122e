#Purpose: Service-area geofencing.
#Decides whether a coordinate may be used by the dispatch core at all.
#Typical responsibilities:
#reject malformed coordinates (non-finite, out of lat/lng range)
#check membership in the configured service polygon
#carve out exclusion zones (islands we don't serve, restricted areas)
#The region is configuration, not a constant: the current deployment is the
#Philippines bounding box but any polygon can be injected.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Iterable, Sequence, Tuple

from routing.models import Coordinate

logger = logging.getLogger(__name__)

Polygon = Tuple[Coordinate, ...]

# current deployment (lat 4.5..21.5, lng 116..127)
PHILIPPINES_BOUNDS = (4.5, 21.5, 116.0, 127.0)


class InvalidCoordinate(ValueError):
    """Raised for non-finite or out-of-range coordinates."""

    def __init__(self, coordinate, reason: str):
        super().__init__(f"Invalid coordinate {coordinate!r}: {reason}")
        self.coordinate = coordinate
        self.reason = reason


class OutOfServiceArea(Exception):
    """
    Raised when a well-formed coordinate falls outside the service region.
    Informational: callers decide whether to reject or just flag it.
    """

    def __init__(self, coordinate: Coordinate):
        super().__init__(f"Coordinate ({coordinate.lat}, {coordinate.lng}) is outside the service area")
        self.coordinate = coordinate


@dataclass(frozen=True)
class ServiceRegion:
    """
    Serviceable polygon plus optional exclusion polygons.
    Polygons are vertex lists in order; closing vertex is implied.
    """
    boundary: Polygon
    exclusions: Tuple[Polygon, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.boundary) < 3:
            raise ValueError("Service boundary needs at least 3 vertices")
        for zone in self.exclusions:
            if len(zone) < 3:
                raise ValueError("Exclusion zone needs at least 3 vertices")

    @classmethod
    def from_bounds(cls, lat_min: float, lat_max: float, lng_min: float, lng_max: float,
                    exclusions: Iterable[Sequence[Coordinate]] = ()) -> ServiceRegion:
        if lat_min >= lat_max or lng_min >= lng_max:
            raise ValueError("Bounds must satisfy min < max")
        boundary = (
            Coordinate(lat_min, lng_min),
            Coordinate(lat_min, lng_max),
            Coordinate(lat_max, lng_max),
            Coordinate(lat_max, lng_min),
        )
        return cls(boundary=boundary, exclusions=tuple(tuple(zone) for zone in exclusions))

    @classmethod
    def from_points(cls, points: Iterable[Sequence[float]],
                    exclusions: Iterable[Iterable[Sequence[float]]] = ()) -> ServiceRegion:
        """Build from raw (lat, lng) pairs, e.g. loaded from a config file."""
        boundary = tuple(Coordinate(float(lat), float(lng)) for lat, lng in points)
        zones = tuple(
            tuple(Coordinate(float(lat), float(lng)) for lat, lng in zone)
            for zone in exclusions
        )
        return cls(boundary=boundary, exclusions=zones)

    def contains(self, coordinate: Coordinate) -> bool:
        if not _point_in_polygon(coordinate, self.boundary):
            return False
        for zone in self.exclusions:
            # an exclusion's own edge stays serviceable
            if _point_in_polygon(coordinate, zone) and not _on_boundary(coordinate, zone):
                return False
        return True


def philippines_region() -> ServiceRegion:
    return ServiceRegion.from_bounds(*PHILIPPINES_BOUNDS)


class GeoValidator:
    """
    Confirms a coordinate lies within the configured service region.
    Stateless after construction; safe to share across threads.
    """

    def __init__(self, region: ServiceRegion | None = None):
        self.region = region or philippines_region()

    def validate(self, coordinate: Coordinate) -> bool:
        """
        True iff the coordinate is well-formed and inside the region.
        Raises InvalidCoordinate for malformed input.
        """
        check_coordinate(coordinate)
        return self.region.contains(coordinate)

    def require(self, coordinate: Coordinate) -> Coordinate:
        if not self.validate(coordinate):
            logger.debug("coordinate (%s, %s) outside service area", coordinate.lat, coordinate.lng)
            raise OutOfServiceArea(coordinate)
        return coordinate


def check_coordinate(coordinate) -> Coordinate:
    """
    Shape/range check only, no region membership.
    """
    if not isinstance(coordinate, Coordinate):
        raise InvalidCoordinate(coordinate, "expected a Coordinate")

    for name, value in (("lat", coordinate.lat), ("lng", coordinate.lng)):
        # bool is a Real subclass but never a valid degree value
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidCoordinate(coordinate, f"{name} must be a number")
        if not math.isfinite(value):
            raise InvalidCoordinate(coordinate, f"{name} must be finite")

    if not -90.0 <= coordinate.lat <= 90.0:
        raise InvalidCoordinate(coordinate, "lat must be within [-90, 90]")
    if not -180.0 <= coordinate.lng <= 180.0:
        raise InvalidCoordinate(coordinate, "lng must be within [-180, 180]")
    return coordinate


# -------------------------
# Internal helpers
# -------------------------

def _point_in_polygon(point: Coordinate, polygon: Polygon) -> bool:
    """
    Ray casting in (lng, lat) plane. Points on an edge count as inside.
    """
    if _on_boundary(point, polygon):
        return True

    x, y = point.lng, point.lat
    inside = False
    count = len(polygon)
    for i in range(count):
        a = polygon[i]
        b = polygon[(i + 1) % count]
        if (a.lat > y) != (b.lat > y):
            x_cross = a.lng + (y - a.lat) * (b.lng - a.lng) / (b.lat - a.lat)
            if x < x_cross:
                inside = not inside
    return inside


def _on_boundary(point: Coordinate, polygon: Polygon, eps: float = 1e-12) -> bool:
    x, y = point.lng, point.lat
    count = len(polygon)
    for i in range(count):
        a = polygon[i]
        b = polygon[(i + 1) % count]
        cross = (b.lng - a.lng) * (y - a.lat) - (b.lat - a.lat) * (x - a.lng)
        if abs(cross) > eps:
            continue
        if min(a.lng, b.lng) - eps <= x <= max(a.lng, b.lng) + eps and \
                min(a.lat, b.lat) - eps <= y <= max(a.lat, b.lat) + eps:
            return True
    return False
