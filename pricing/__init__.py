"""
Pricing package.

Public API:
- FeeCalculator, DeliveryQuote, VendorLocation, VendorQuote, delivery_fee
- PricingPolicy and its factories
- build_pricing, split_earnings, reconcile
"""

from .policy import PricingPolicy, default_pricing_policy, pricing_policy_from_env
from .fees import FeeCalculator, DeliveryQuote, VendorLocation, VendorQuote, delivery_fee
from .earnings import build_pricing, split_earnings, reconcile

__all__ = [
    "PricingPolicy",
    "default_pricing_policy",
    "pricing_policy_from_env",
    "FeeCalculator",
    "DeliveryQuote",
    "VendorLocation",
    "VendorQuote",
    "delivery_fee",
    "build_pricing",
    "split_earnings",
    "reconcile",
]
