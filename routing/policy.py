"""
Purpose: Central configuration for distance/route computation.
What it does:

Stores all tunable routing constants:

ROAD_FACTOR = 1.3              (great-circle -> road distance multiplier)
FALLBACK_SPEED_KMH = 30        (average speed used for fallback durations)
PROVIDER_TIMEOUT_SECONDS = 4
MAX_DESTINATIONS = 25          (distance-matrix wire limit)
MAX_WAYPOINTS = 8              (route / optimize wire limit)
CACHE_TTL_SECONDS = 60
CACHE_MAX_ENTRIES = 10000       (oldest entries evicted past this)
MAX_WORKERS = 8

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class RoutingPolicy:
    """
    Knobs for DistanceEngine / RouteOptimizer.
    """

    # --- Fallback estimate ---
    # Multiplier applied to the haversine distance when the provider is down.
    road_factor: float = 1.3
    # Used to derive a duration from the fallback distance.
    fallback_speed_kmh: float = 30.0

    # --- Provider ---
    provider_timeout_seconds: float = 4.0
    profile: str = "driving"

    # --- Wire limits (part of the API contract, enforced not truncated) ---
    max_destinations: int = 25
    max_waypoints: int = 8

    # --- Burst absorption ---
    cache_ttl_seconds: float = 60.0
    cache_max_entries: int = 10_000
    max_workers: int = 8

    def validate(self) -> None:
        if self.road_factor < 1.0:
            raise ValueError("road_factor must be >= 1.0")
        if self.fallback_speed_kmh <= 0:
            raise ValueError("fallback_speed_kmh must be > 0")
        if self.provider_timeout_seconds <= 0:
            raise ValueError("provider_timeout_seconds must be > 0")
        if self.max_destinations < 1 or self.max_waypoints < 0:
            raise ValueError("batch limits must be positive")
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        if self.cache_max_entries < 1:
            raise ValueError("cache_max_entries must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    @property
    def fallback_speed_mps(self) -> float:
        return self.fallback_speed_kmh * 1000.0 / 3600.0


def default_routing_policy() -> RoutingPolicy:
    p = RoutingPolicy()
    p.validate()
    return p


def routing_policy_from_env() -> RoutingPolicy:
    """
    Same defaults, overridable from the environment / .env file.
    """
    load_dotenv()
    defaults = RoutingPolicy()
    p = RoutingPolicy(
        road_factor=float(os.getenv("ROAD_FACTOR", defaults.road_factor)),
        fallback_speed_kmh=float(os.getenv("FALLBACK_SPEED_KMH", defaults.fallback_speed_kmh)),
        provider_timeout_seconds=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", defaults.provider_timeout_seconds)),
        profile=os.getenv("OSRM_PROFILE", defaults.profile),
        cache_ttl_seconds=float(os.getenv("DISTANCE_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds)),
        cache_max_entries=int(os.getenv("DISTANCE_CACHE_MAX_ENTRIES", defaults.cache_max_entries)),
        max_workers=int(os.getenv("DISTANCE_MAX_WORKERS", defaults.max_workers)),
    )
    p.validate()
    return p
