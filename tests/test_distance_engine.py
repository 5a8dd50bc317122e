import math

import pytest

from routing.distance_engine import (
    DistanceEngine,
    DistanceUnavailable,
    LimitExceeded,
    haversine_meters,
)
from routing.geofence import InvalidCoordinate, OutOfServiceArea
from routing.matrix_adapter import DistanceCache
from routing.models import Coordinate, DistanceResult, DistanceStatus
from routing.policy import RoutingPolicy

from conftest import MAKATI, QUIAPO, RIZAL_PARK, TOKYO, FakeProvider, uncached_engine


def _fan(count, base=RIZAL_PARK, step=0.001):
    return [Coordinate(base.lat + step * (i + 1), base.lng) for i in range(count)]


def test_point_to_point_uses_provider(engine, provider):
    result = engine.point_to_point(RIZAL_PARK, QUIAPO)

    expected, expected_duration = FakeProvider.road(RIZAL_PARK, QUIAPO)
    assert result.fallback is False
    assert result.status == DistanceStatus.OK
    assert result.distance_meters == pytest.approx(expected)
    assert result.duration_seconds == math.floor(expected_duration)
    assert isinstance(result.duration_seconds, int)
    assert provider.route_calls == 1


def test_provider_outage_falls_back_within_bounds(validator):
    engine = DistanceEngine(FakeProvider(fail_code="Timeout"), validator=validator)
    result = engine.point_to_point(RIZAL_PARK, MAKATI)

    straight = haversine_meters(RIZAL_PARK, MAKATI)
    rf = engine.policy.road_factor
    assert result.fallback is True
    assert result.status == DistanceStatus.OK
    assert 0.9 * rf * straight <= result.distance_meters <= 1.3 * rf * straight
    # 30 km/h
    assert result.duration_seconds == math.floor(result.distance_meters / (30 * 1000 / 3600))


@pytest.mark.parametrize("code,status", [
    ("NoRoute", DistanceStatus.ZERO_RESULTS),
    ("NoSegment", DistanceStatus.NOT_FOUND),
    ("InvalidValue", DistanceStatus.NOT_FOUND),
    ("TransportError", DistanceStatus.OK),
])
def test_provider_verdicts_map_to_status(validator, code, status):
    engine = DistanceEngine(FakeProvider(fail_code=code), validator=validator)
    result = engine.point_to_point(RIZAL_PARK, QUIAPO)
    assert result.status == status
    assert result.fallback is True


def test_out_of_area_and_malformed_inputs_raise(engine, provider):
    with pytest.raises(OutOfServiceArea):
        engine.point_to_point(RIZAL_PARK, TOKYO)
    with pytest.raises(InvalidCoordinate):
        engine.point_to_point(Coordinate(float("nan"), 120.0), QUIAPO)
    assert provider.route_calls == 0


def test_distance_unavailable_without_validator():
    engine = DistanceEngine(FakeProvider(fail_code="Timeout"))
    with pytest.raises(DistanceUnavailable):
        engine.point_to_point(Coordinate(float("nan"), 120.0), QUIAPO)


def test_cache_hit_skips_provider(engine, provider):
    first = engine.point_to_point(RIZAL_PARK, QUIAPO)
    second = engine.point_to_point(RIZAL_PARK, QUIAPO)
    assert first == second
    assert provider.route_calls == 1


def test_fallback_results_are_not_cached(validator):
    provider = FakeProvider(fail_code="Timeout")
    engine = DistanceEngine(provider, validator=validator)
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    assert provider.route_calls == 2
    assert len(engine.cache) == 0


def test_cache_entries_expire():
    now = [0.0]
    cache = DistanceCache(ttl_seconds=60, clock=lambda: now[0])
    provider = FakeProvider()
    engine = DistanceEngine(provider, cache=cache)

    engine.point_to_point(RIZAL_PARK, QUIAPO)
    now[0] = 61.0
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    assert provider.route_calls == 2


def test_full_cache_sweeps_expired_entries_on_write():
    now = [0.0]
    cache = DistanceCache(ttl_seconds=60, clock=lambda: now[0], max_entries=3)
    hit = DistanceResult(1000.0, 120)
    stale, fresh = _fan(2), _fan(2, base=MAKATI)
    for destination in stale:
        cache.put(RIZAL_PARK, destination, "driving", hit)

    now[0] = 50.0
    cache.put(RIZAL_PARK, fresh[0], "driving", hit)
    now[0] = 70.0  # first two are stale, third is not
    cache.put(RIZAL_PARK, fresh[1], "driving", hit)

    assert len(cache) == 2
    assert cache.get(RIZAL_PARK, fresh[0], "driving") == hit
    assert cache.get(RIZAL_PARK, stale[0], "driving") is None


def test_cache_never_grows_past_max_entries():
    cache = DistanceCache(ttl_seconds=60, clock=lambda: 0.0, max_entries=5)
    destinations = _fan(12)
    for destination in destinations:
        cache.put(RIZAL_PARK, destination, "driving", DistanceResult(1000.0, 120))
        assert len(cache) <= 5

    # oldest go first
    assert cache.get(RIZAL_PARK, destinations[0], "driving") is None
    assert cache.get(RIZAL_PARK, destinations[-1], "driving") is not None


def test_engine_cache_sized_from_policy(validator):
    engine = DistanceEngine(FakeProvider(), validator=validator, policy=RoutingPolicy(cache_max_entries=2))
    engine.one_to_many(RIZAL_PARK, _fan(6))
    assert engine.cache.max_entries == 2
    assert len(engine.cache) == 2


def test_one_to_many_keeps_input_order(engine, provider):
    destinations = [MAKATI, QUIAPO, RIZAL_PARK]
    results = engine.one_to_many(RIZAL_PARK, destinations)

    assert [r.distance_meters for r in results] == pytest.approx(
        [FakeProvider.road(RIZAL_PARK, d)[0] for d in destinations]
    )
    assert provider.table_calls == 1


def test_one_to_many_limits(engine):
    assert len(engine.one_to_many(RIZAL_PARK, _fan(25))) == 25
    with pytest.raises(LimitExceeded) as excinfo:
        engine.one_to_many(RIZAL_PARK, _fan(26))
    assert excinfo.value.count == 26
    assert excinfo.value.limit == 25


def test_one_to_many_empty(engine, provider):
    assert engine.one_to_many(RIZAL_PARK, []) == []
    assert provider.table_calls == 0


def test_null_cell_falls_back_alone(validator):
    engine = DistanceEngine(FakeProvider(null_cells={1}), validator=validator)
    results = engine.one_to_many(RIZAL_PARK, [QUIAPO, MAKATI, QUIAPO])

    assert [r.fallback for r in results] == [False, True, False]
    assert results[1].status == DistanceStatus.ZERO_RESULTS


def test_table_failure_resolves_each_destination(validator):
    # table down but route still answers: partial success per destination
    provider = FakeProvider(table_fail_code="TransportError")
    engine = uncached_engine(provider, validator)
    results = engine.one_to_many(RIZAL_PARK, [QUIAPO, MAKATI])

    assert [r.fallback for r in results] == [False, False]
    assert provider.route_calls == 2


def test_one_to_many_only_asks_for_cache_misses(engine, provider):
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    engine.one_to_many(RIZAL_PARK, [QUIAPO, MAKATI])
    engine.one_to_many(RIZAL_PARK, [QUIAPO, MAKATI])
    assert provider.table_calls == 1


def test_many_to_one_in_input_order(engine):
    origins = [MAKATI, QUIAPO]
    results = engine.many_to_one(origins, RIZAL_PARK)
    assert [r.distance_meters for r in results] == pytest.approx(
        [FakeProvider.road(o, RIZAL_PARK)[0] for o in origins]
    )
    with pytest.raises(LimitExceeded):
        engine.many_to_one(_fan(26), RIZAL_PARK)


def test_route_keeps_waypoint_order(engine):
    route = engine.route(RIZAL_PARK, MAKATI, [QUIAPO])
    assert len(route.legs) == 2
    assert route.polyline[0] == RIZAL_PARK
    assert route.total_distance == pytest.approx(sum(leg.distance_meters for leg in route.legs))
    assert route.fallback is False


def test_route_waypoint_limit(engine):
    assert len(engine.route(RIZAL_PARK, MAKATI, _fan(8)).legs) == 9
    with pytest.raises(LimitExceeded):
        engine.route(RIZAL_PARK, MAKATI, _fan(9))


def test_route_fallback_uses_straight_polyline(validator):
    engine = DistanceEngine(FakeProvider(fail_code="Timeout"), validator=validator)
    route = engine.route(RIZAL_PARK, MAKATI, [QUIAPO])
    assert route.fallback is True
    assert route.polyline == (RIZAL_PARK, QUIAPO, MAKATI)
    assert all(leg.fallback for leg in route.legs)


def test_zero_ttl_disables_cache(provider):
    engine = DistanceEngine(provider, policy=RoutingPolicy(cache_ttl_seconds=0))
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    engine.point_to_point(RIZAL_PARK, QUIAPO)
    assert provider.route_calls == 2
