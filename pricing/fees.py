"""
Purpose: Delivery fee + ETA quotes.
What it does:
- quote(origin, destination, radius_km): one DeliveryQuote for a vendor -> customer trip
- vendors_in_range(customer, vendors): which vendors can deliver here, nearest first,
  each with its own fee/ETA (the "restaurants near you" list)

Quotes are derived and never stored; callers may cache them for a short TTL.
A quote built on a fallback distance is still returned, flagged estimated=True
with lower confidence, so the UI can say "about".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, List, Optional, Sequence

from routing.distance_engine import DistanceEngine
from routing.eta_service import EtaPolicy, default_eta_policy, estimate_eta_minutes
from routing.geofence import InvalidCoordinate, OutOfServiceArea
from routing.models import Coordinate, DistanceResult
from .policy import CENT, PricingPolicy, default_pricing_policy

logger = logging.getLogger(__name__)

PROVIDER_CONFIDENCE = 0.9
FALLBACK_CONFIDENCE = 0.5


@dataclass(frozen=True)
class DeliveryQuote:
    distance_meters: float
    duration_seconds: int
    fee: Decimal
    eta_minutes: int
    within_service_radius: bool
    estimated: bool = False
    confidence: float = PROVIDER_CONFIDENCE

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000.0

    def to_dict(self) -> dict:
        return {
            "distanceMeters": self.distance_meters,
            "durationSeconds": self.duration_seconds,
            "fee": str(self.fee),
            "etaMinutes": self.eta_minutes,
            "withinServiceRadius": self.within_service_radius,
            "estimated": self.estimated,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class VendorLocation:
    vendor_id: str
    coordinate: Coordinate
    radius_km: Optional[float] = None  # None -> policy default


@dataclass(frozen=True)
class VendorQuote:
    vendor_id: str
    quote: DeliveryQuote


def delivery_fee(distance_km: float, policy: PricingPolicy) -> Decimal:
    """
    base_fee + max(0, distance_km - free_threshold_km) * per_km_rate,
    clamped to [min_fee, max_fee] when configured, rounded to centavos.
    """
    extra_km = Decimal(str(max(0.0, distance_km - policy.free_threshold_km)))
    fee = policy.base_fee + extra_km * policy.per_km_rate
    if policy.min_fee is not None:
        fee = max(fee, policy.min_fee)
    if policy.max_fee is not None:
        fee = min(fee, policy.max_fee)
    return fee.quantize(CENT, rounding=ROUND_HALF_UP)


class FeeCalculator:
    """
    Args:
        engine: DistanceEngine used for every distance
        policy: PricingPolicy (injected, never global)
        eta_policy: EtaPolicy (prep buffer, optional peak windows)
        clock: returns "now" for peak-hour ETA adjustment
    """

    def __init__(self, engine: DistanceEngine, policy: Optional[PricingPolicy] = None,
                 eta_policy: Optional[EtaPolicy] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.engine = engine
        self.policy = policy or default_pricing_policy()
        self.eta_policy = eta_policy or default_eta_policy()
        self.clock = clock

    def quote(self, origin: Coordinate, destination: Coordinate,
              radius_km: Optional[float] = None) -> DeliveryQuote:
        result = self.engine.point_to_point(origin, destination)
        return self._quote_from(result, radius_km)

    def vendors_in_range(self, customer: Coordinate, vendors: Sequence[VendorLocation]) -> List[VendorQuote]:
        """
        Vendors whose own radius covers the customer, nearest first.
        Vendors with unusable coordinates are skipped, not fatal.
        """
        usable: List[VendorLocation] = []
        for vendor in vendors:
            try:
                if self.engine.validator is not None:
                    self.engine.validator.require(vendor.coordinate)
            except (InvalidCoordinate, OutOfServiceArea) as exc:
                logger.warning("skipping vendor %s: %s", vendor.vendor_id, exc)
                continue
            usable.append(vendor)

        chunk = self.engine.policy.max_destinations
        quotes: List[VendorQuote] = []
        for start in range(0, len(usable), chunk):
            batch = usable[start:start + chunk]
            results = self.engine.one_to_many(customer, [vendor.coordinate for vendor in batch])
            for vendor, result in zip(batch, results):
                quote = self._quote_from(result, vendor.radius_km)
                if quote.within_service_radius:
                    quotes.append(VendorQuote(vendor_id=vendor.vendor_id, quote=quote))

        quotes.sort(key=lambda vendor_quote: vendor_quote.quote.distance_meters)
        return quotes

    # -------------------------
    # Internal helpers
    # -------------------------

    def _quote_from(self, result: DistanceResult, radius_km: Optional[float]) -> DeliveryQuote:
        radius = radius_km if radius_km is not None else self.policy.default_radius_km
        distance_km = result.distance_meters / 1000.0
        return DeliveryQuote(
            distance_meters=result.distance_meters,
            duration_seconds=result.duration_seconds,
            fee=delivery_fee(distance_km, self.policy),
            eta_minutes=estimate_eta_minutes(result.duration_seconds, self.eta_policy, self.clock()),
            within_service_radius=distance_km <= radius,
            estimated=result.fallback,
            confidence=FALLBACK_CONFIDENCE if result.fallback else PROVIDER_CONFIDENCE,
        )
