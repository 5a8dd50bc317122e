"""
Purpose: Short-lived memo of provider distance answers.
What it does:
Keeps provider results keyed by (origin, destination, profile) for a few
seconds so bursts of identical quotes hit OSRM once. Stale entries are dropped
on lookup and swept on write once the cache is full; if it is still full after
the sweep the oldest entries go.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from routing.models import Coordinate, DistanceResult

CacheKey = Tuple[float, float, float, float, str]


class DistanceCache:
    """
    Short-lived cache of provider answers keyed by (origin, destination, profile).
    Absorbs request bursts (same vendor quoted many times a minute).

    Only provider results go in here; fallback estimates are never cached so
    the next request gets another chance at a real road distance.
    """
    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic,
                 max_entries: int = 10_000):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # insertion order == age order (put re-inserts refreshed keys at the end)
        self._cache: Dict[CacheKey, Tuple[float, DistanceResult]] = {}

    @staticmethod
    def key(origin: Coordinate, destination: Coordinate, profile: str) -> CacheKey:
        return (origin.lat, origin.lng, destination.lat, destination.lng, profile)

    def get(self, origin: Coordinate, destination: Coordinate, profile: str) -> Optional[DistanceResult]:
        if self.ttl_seconds <= 0:
            return None
        key = self.key(origin, destination, profile)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, result = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._cache[key]
                return None
            return result

    def put(self, origin: Coordinate, destination: Coordinate, profile: str, result: DistanceResult) -> None:
        if self.ttl_seconds <= 0 or result.fallback:
            return
        key = self.key(origin, destination, profile)
        with self._lock:
            now = self._clock()
            self._cache.pop(key, None)
            if len(self._cache) >= self.max_entries:
                self._drop_stale(now)
            while len(self._cache) >= self.max_entries:
                del self._cache[next(iter(self._cache))]
            self._cache[key] = (now, result)

    def purge_expired(self) -> int:
        """Drop stale entries; returns how many were removed."""
        with self._lock:
            return self._drop_stale(self._clock())

    def _drop_stale(self, now: float) -> int:
        # caller holds self._lock
        stale = [key for key, (stored_at, _) in self._cache.items() if now - stored_at > self.ttl_seconds]
        for key in stale:
            del self._cache[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
