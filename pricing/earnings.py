"""
Purpose: Order money at creation time.
What it does:
- build_pricing: subtotal + tax + delivery fee + platform fee -> Pricing (total fixed here)
- split_earnings: who gets what out of total - tax
    platform_commission = subtotal * commission_rate + platform_fee + (delivery_fee - driver cut)
    vendor_earnings     = subtotal - subtotal * commission_rate
    driver_earnings     = delivery_fee * driver_share
  Rounding leftovers go to the platform so the three always add up to total - tax.
- reconcile: the check the invariant tests (and auditors) run
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from orders.models import Earnings, Pricing
from .policy import CENT, PricingPolicy, default_pricing_policy


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def build_pricing(subtotal, delivery_fee, policy: Optional[PricingPolicy] = None,
                  platform_fee=None) -> Pricing:
    policy = policy or default_pricing_policy()

    subtotal = to_money(subtotal)
    delivery_fee = to_money(delivery_fee)
    if subtotal < 0 or delivery_fee < 0:
        raise ValueError("subtotal and delivery_fee must be >= 0")

    tax = to_money(subtotal * policy.tax_rate)
    platform_fee = to_money(policy.platform_fee if platform_fee is None else platform_fee)
    return Pricing(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=delivery_fee,
        platform_fee=platform_fee,
        total=subtotal + tax + delivery_fee + platform_fee,
    )


def split_earnings(pricing: Pricing, policy: Optional[PricingPolicy] = None) -> Earnings:
    policy = policy or default_pricing_policy()

    vendor_earnings = to_money(pricing.subtotal - pricing.subtotal * policy.commission_rate)
    driver_earnings = to_money(pricing.delivery_fee * policy.driver_share)
    platform_commission = pricing.net_of_tax - vendor_earnings - driver_earnings

    return Earnings(
        vendor_earnings=vendor_earnings,
        driver_earnings=driver_earnings,
        platform_commission=platform_commission,
    )


def reconcile(pricing: Pricing, earnings: Earnings) -> bool:
    return earnings.total == pricing.net_of_tax
