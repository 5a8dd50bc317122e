"""
Purpose: Central configuration for delivery pricing (single source of truth).
What it does:

Stores all tunable money knobs:

BASE_FEE = 49.00                (PHP, flat part of the delivery fee)
PER_KM_RATE = 10.00             (charged per km beyond the free threshold)
FREE_THRESHOLD_KM = 2.0
DEFAULT_RADIUS_KM = 10.0        (used when a vendor has no radius of its own)
MIN_FEE / MAX_FEE = None        (optional clamps)
TAX_RATE = 0.12                 (VAT on the subtotal)
PLATFORM_FEE = 5.00             (service fee per order)
COMMISSION_RATE = 0.15          (platform share of the food subtotal)
DRIVER_SHARE = 0.80             (driver share of the delivery fee)

The policy is injected into FeeCalculator / earnings helpers at construction
so tests can swap it deterministically. Nothing reads it from globals.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PricingPolicy:
    """
    Money values are Decimal; distances are float km.
    """

    # --- Delivery fee ---
    base_fee: Decimal = Decimal("49.00")
    per_km_rate: Decimal = Decimal("10.00")
    free_threshold_km: float = 2.0
    min_fee: Optional[Decimal] = None
    max_fee: Optional[Decimal] = None

    # --- Service radius ---
    default_radius_km: float = 10.0

    # --- Order totals ---
    tax_rate: Decimal = Decimal("0.12")
    platform_fee: Decimal = Decimal("5.00")

    # --- Earnings split ---
    commission_rate: Decimal = Decimal("0.15")
    driver_share: Decimal = Decimal("0.80")

    currency: str = "PHP"

    def validate(self) -> None:
        if self.base_fee < 0 or self.per_km_rate < 0:
            raise ValueError("base_fee and per_km_rate must be >= 0")
        if self.free_threshold_km < 0:
            raise ValueError("free_threshold_km must be >= 0")
        if self.default_radius_km <= 0:
            raise ValueError("default_radius_km must be > 0")
        if self.min_fee is not None and self.max_fee is not None and self.min_fee > self.max_fee:
            raise ValueError("min_fee must be <= max_fee")
        if not Decimal("0") <= self.tax_rate < Decimal("1"):
            raise ValueError("tax_rate must be within [0, 1)")
        if self.platform_fee < 0:
            raise ValueError("platform_fee must be >= 0")
        if not Decimal("0") <= self.commission_rate <= Decimal("1"):
            raise ValueError("commission_rate must be within [0, 1]")
        if not Decimal("0") <= self.driver_share <= Decimal("1"):
            raise ValueError("driver_share must be within [0, 1]")


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p


def pricing_policy_from_env() -> PricingPolicy:
    """
    Default policy with overrides from the environment / .env file.
    """
    load_dotenv()
    defaults = PricingPolicy()

    def _money(name: str, default: Optional[Decimal]) -> Optional[Decimal]:
        raw = os.getenv(name)
        if raw is None or raw == "":
            return default
        return Decimal(raw)

    p = PricingPolicy(
        base_fee=_money("BASE_FEE", defaults.base_fee),
        per_km_rate=_money("PER_KM_RATE", defaults.per_km_rate),
        free_threshold_km=float(os.getenv("FREE_THRESHOLD_KM", defaults.free_threshold_km)),
        min_fee=_money("MIN_DELIVERY_FEE", defaults.min_fee),
        max_fee=_money("MAX_DELIVERY_FEE", defaults.max_fee),
        default_radius_km=float(os.getenv("DEFAULT_RADIUS_KM", defaults.default_radius_km)),
        tax_rate=_money("TAX_RATE", defaults.tax_rate),
        platform_fee=_money("PLATFORM_FEE", defaults.platform_fee),
        commission_rate=_money("COMMISSION_RATE", defaults.commission_rate),
        driver_share=_money("DRIVER_SHARE", defaults.driver_share),
        currency=os.getenv("CURRENCY", defaults.currency),
    )
    p.validate()
    return p
