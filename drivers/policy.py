"""
Purpose: Central configuration for driver selection and offers.
What it does:

Stores the tunable caps used when ranking drivers toward a pickup:

MAX_CANDIDATES = 25          (one many_to_one batch)
MAX_PICKUP_DISTANCE_METERS   (None = no cap)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for driver ranking and offer sequencing.
    """

    # --- Candidate pool ---
    # Drivers ranked per assign() call. Must fit one distance batch.
    max_candidates: int = 25

    # --- Reach ---
    # Drivers whose road distance to the pickup exceeds this are not offered.
    max_pickup_distance_meters: Optional[float] = None

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if not 1 <= self.max_candidates <= 25:
            raise ValueError("max_candidates must be between 1 and 25")

        if self.max_pickup_distance_meters is not None and self.max_pickup_distance_meters <= 0:
            raise ValueError("max_pickup_distance_meters must be > 0")


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p


def dispatch_policy_from_env() -> DispatchPolicy:
    """
    Default policy with overrides from MAX_DRIVER_CANDIDATES / MAX_PICKUP_DISTANCE_METERS.
    """
    load_dotenv()
    max_distance = os.getenv("MAX_PICKUP_DISTANCE_METERS")
    p = DispatchPolicy(
        max_candidates=int(os.getenv("MAX_DRIVER_CANDIDATES", 25)),
        max_pickup_distance_meters=float(max_distance) if max_distance else None,
    )
    p.validate()
    return p
