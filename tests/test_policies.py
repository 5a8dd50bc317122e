from decimal import Decimal

import pytest

from drivers.policy import DispatchPolicy, dispatch_policy_from_env
from pricing.policy import PricingPolicy, pricing_policy_from_env
from routing.eta_service import EtaPolicy, eta_policy_from_env
from routing.policy import RoutingPolicy, routing_policy_from_env


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ROAD_FACTOR", "1.4")
    monkeypatch.setenv("DISTANCE_CACHE_MAX_ENTRIES", "500")
    monkeypatch.setenv("BASE_FEE", "39.00")
    monkeypatch.setenv("MAX_DELIVERY_FEE", "150")
    monkeypatch.setenv("PREP_BUFFER_MINUTES", "10")
    monkeypatch.setenv("MAX_DRIVER_CANDIDATES", "5")

    routing = routing_policy_from_env()
    assert routing.road_factor == 1.4
    assert routing.cache_max_entries == 500
    pricing = pricing_policy_from_env()
    assert pricing.base_fee == Decimal("39.00")
    assert pricing.max_fee == Decimal("150")
    assert eta_policy_from_env().prep_buffer_minutes == 10
    assert dispatch_policy_from_env().max_candidates == 5


@pytest.mark.parametrize("policy", [
    RoutingPolicy(road_factor=0.9),
    RoutingPolicy(max_workers=0),
    RoutingPolicy(cache_max_entries=0),
    PricingPolicy(min_fee=Decimal("100"), max_fee=Decimal("50")),
    PricingPolicy(driver_share=Decimal("1.5")),
    EtaPolicy(peak_windows=((14, 11),)),
    DispatchPolicy(max_candidates=26),
])
def test_invalid_policies_fail_validation(policy):
    with pytest.raises(ValueError):
        policy.validate()
