#Purpose: Multi-stop visiting order.
#Given a start point and a handful of stops (<= 8), pick a low-cost order to visit them.
#Nearest-neighbour, not exact TSP: at each step go to the closest unvisited stop
#(ties -> earlier input index). With 8 stops inside a delivery radius the gap to
#optimal is small and the call count stays at one matrix row per step.
#Distances come from DistanceEngine.one_to_many so fallback/caching apply per leg.

from __future__ import annotations

import logging
from typing import List, Sequence

from routing.distance_engine import DistanceEngine, LimitExceeded
from routing.models import Coordinate, DistanceResult, OptimizedRoute, sum_legs

logger = logging.getLogger(__name__)


class RouteOptimizer:

    def __init__(self, engine: DistanceEngine):
        self.engine = engine

    def optimize(self, origin: Coordinate, stops: Sequence[Coordinate],
                 return_to_origin: bool = False) -> OptimizedRoute:
        """
        Order stops by nearest-neighbour from origin.

        Args:
            origin: start point (usually the driver or the vendor)
            stops: 1..8 stops to visit
            return_to_origin: add a closing leg back to origin

        Returns:
            OptimizedRoute with stops in visiting order, their input indices,
            the chosen legs and summed totals.
        """
        if not stops:
            raise ValueError("At least one stop is required to optimize a route.")
        limit = self.engine.policy.max_waypoints
        if len(stops) > limit:
            raise LimitExceeded("stops", len(stops), limit)

        unvisited: List[int] = list(range(len(stops)))
        order: List[int] = []
        legs: List[DistanceResult] = []
        current = origin

        while unvisited:
            candidates = [stops[i] for i in unvisited]
            results = self.engine.one_to_many(current, candidates)

            # min() keeps the first minimum, i.e. the lowest input index on ties
            best_pos = min(range(len(unvisited)), key=lambda pos: results[pos].distance_meters)
            chosen = unvisited.pop(best_pos)
            order.append(chosen)
            legs.append(results[best_pos])
            current = stops[chosen]

        if return_to_origin:
            legs.append(self.engine.point_to_point(current, origin))

        total_distance, total_duration = sum_legs(legs)
        logger.debug("optimized %d stops -> order %s (%.0fm)", len(stops), order, total_distance)
        return OptimizedRoute(
            stops=tuple(stops[i] for i in order),
            order=tuple(order),
            legs=tuple(legs),
            total_distance=total_distance,
            total_duration=total_duration,
            return_to_origin=return_to_origin,
        )
