#Purpose: ETA estimation policy.
#Converts routing outputs into the "arrives in X minutes" shown to customers:
#travel minutes (rounded up) x peak factor + fixed prep buffer.
#Peak windows are off by default; lunch/dinner rush can be configured per deployment.
#Keeps ETA logic separate from route computation and from fee math.

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from dotenv import load_dotenv

HourWindow = Tuple[int, int]


@dataclass(frozen=True)
class EtaPolicy:
    # minutes added on top of travel time (kitchen handoff, parking, stairs)
    prep_buffer_minutes: int = 15

    # [start_hour, end_hour) local hours, e.g. ((11, 14), (17, 21))
    peak_windows: Tuple[HourWindow, ...] = field(default_factory=tuple)
    peak_factor: float = 1.2

    def validate(self) -> None:
        if self.prep_buffer_minutes < 0:
            raise ValueError("prep_buffer_minutes must be >= 0")
        if self.peak_factor < 1.0:
            raise ValueError("peak_factor must be >= 1.0")
        for start, end in self.peak_windows:
            if not (0 <= start < end <= 24):
                raise ValueError(f"invalid peak window ({start}, {end})")

    def factor_at(self, now: Optional[datetime]) -> float:
        if now is None or not self.peak_windows:
            return 1.0
        for start, end in self.peak_windows:
            if start <= now.hour < end:
                return self.peak_factor
        return 1.0


def default_eta_policy() -> EtaPolicy:
    p = EtaPolicy()
    p.validate()
    return p


def rush_hour_eta_policy() -> EtaPolicy:
    """Lunch 11-14 and dinner 17-21 at +20%."""
    p = EtaPolicy(peak_windows=((11, 14), (17, 21)), peak_factor=1.2)
    p.validate()
    return p


def eta_policy_from_env() -> EtaPolicy:
    load_dotenv()
    p = EtaPolicy(prep_buffer_minutes=int(os.getenv("PREP_BUFFER_MINUTES", EtaPolicy.prep_buffer_minutes)))
    p.validate()
    return p


def estimate_eta_minutes(duration_seconds: int, policy: EtaPolicy, now: Optional[datetime] = None) -> int:
    """
    ceil(duration/60), scaled by the peak factor (rounded up again),
    plus the prep buffer.
    """
    travel_minutes = math.ceil(duration_seconds / 60)
    factor = policy.factor_at(now)
    if factor != 1.0:
        travel_minutes = math.ceil(travel_minutes * factor)
    return int(travel_minutes) + policy.prep_buffer_minutes
