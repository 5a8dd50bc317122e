import pytest

from routing.distance_engine import LimitExceeded
from routing.models import Coordinate
from routing.route_service import RouteOptimizer

from conftest import RIZAL_PARK


@pytest.fixture
def optimizer(engine):
    return RouteOptimizer(engine)


def test_nearest_neighbour_order(optimizer):
    # stops due north at 3, 1 and 2 km-ish steps from the origin
    far = Coordinate(RIZAL_PARK.lat + 0.03, RIZAL_PARK.lng)
    near = Coordinate(RIZAL_PARK.lat + 0.01, RIZAL_PARK.lng)
    middle = Coordinate(RIZAL_PARK.lat + 0.02, RIZAL_PARK.lng)

    result = optimizer.optimize(RIZAL_PARK, [far, near, middle])

    assert result.order == (1, 2, 0)
    assert result.stops == (near, middle, far)
    assert len(result.legs) == 3
    assert result.total_distance == pytest.approx(sum(leg.distance_meters for leg in result.legs))
    assert result.total_duration == sum(leg.duration_seconds for leg in result.legs)


def test_ties_keep_input_order(optimizer):
    same = Coordinate(RIZAL_PARK.lat + 0.01, RIZAL_PARK.lng)
    result = optimizer.optimize(RIZAL_PARK, [same, same])
    assert result.order == (0, 1)


def test_return_to_origin_adds_closing_leg(optimizer):
    stop = Coordinate(RIZAL_PARK.lat + 0.01, RIZAL_PARK.lng)
    one_way = optimizer.optimize(RIZAL_PARK, [stop])
    round_trip = optimizer.optimize(RIZAL_PARK, [stop], return_to_origin=True)

    assert len(round_trip.legs) == 2
    assert round_trip.total_distance > one_way.total_distance
    assert round_trip.return_to_origin is True


def test_stop_limits(optimizer):
    stops = [Coordinate(RIZAL_PARK.lat + 0.001 * (i + 1), RIZAL_PARK.lng) for i in range(9)]
    assert len(optimizer.optimize(RIZAL_PARK, stops[:8]).order) == 8
    with pytest.raises(LimitExceeded):
        optimizer.optimize(RIZAL_PARK, stops)
    with pytest.raises(ValueError):
        optimizer.optimize(RIZAL_PARK, [])
