import threading
from dataclasses import replace

import pytest

from dispatch.notifications import OrderStatusChanged
from dispatch.state_machines.order_state import IllegalTransition, UnauthorizedActor
from orders.exceptions import VersionConflict
from orders.models import Actor, Address, OrderStatus
from routing.geofence import OutOfServiceArea

from conftest import QUIAPO, TOKYO

VENDOR = Actor.vendor("vendor-1")
ADMIN = Actor.admin("admin-1")
CUSTOMER = Actor.customer("cust-1")


def _to_ready(lifecycle, order):
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY):
        order = lifecycle.transition(order, status, VENDOR)
    return order


def _bind_driver(store, order, driver_id):
    # what the dispatcher does on accept
    return store.save(replace(order, driver_id=driver_id), expected_version=order.version)


def test_create_order_is_pending_with_timeline(new_order, clock):
    order = new_order()

    assert order.status == OrderStatus.PENDING
    assert order.version == 1
    assert order.timeline.ordered == clock.now
    assert order.timeline.confirmed is None
    assert [u.status for u in order.tracking] == ["pending"]


def test_create_order_rejects_out_of_area_address(lifecycle):
    with pytest.raises(OutOfServiceArea):
        lifecycle.create_order("o-x", "c", "v", Address(TOKYO), Address(QUIAPO), "100.00", "49.00")


def test_forward_chain_stamps_each_phase(lifecycle, new_order, store, clock, notifier):
    order = new_order()
    clock.advance(minutes=1)
    order = lifecycle.transition(order, OrderStatus.CONFIRMED, VENDOR)

    assert order.status == OrderStatus.CONFIRMED
    assert order.timeline.confirmed == clock.now
    assert order.version == 2
    assert store.get(order.id) == order

    events = notifier.of_type(OrderStatusChanged)
    assert len(events) == 1
    assert events[0].from_status == OrderStatus.PENDING
    assert events[0].to_status == OrderStatus.CONFIRMED


def test_reapplying_current_status_is_a_noop(lifecycle, new_order, clock, notifier):
    order = lifecycle.transition(new_order(), OrderStatus.CONFIRMED, VENDOR)
    stamped = order.timeline.confirmed
    clock.advance(minutes=5)

    again = lifecycle.transition(order, OrderStatus.CONFIRMED, VENDOR)

    assert again == order
    assert again.timeline.confirmed == stamped
    assert len(notifier.of_type(OrderStatusChanged)) == 1


def test_skipping_a_step_is_illegal(lifecycle, new_order, store):
    order = new_order()
    with pytest.raises(IllegalTransition):
        lifecycle.transition(order, OrderStatus.READY, VENDOR)
    assert store.get(order.id).status == OrderStatus.PENDING


def test_backwards_is_illegal(lifecycle, new_order):
    order = _to_ready(lifecycle, new_order())
    with pytest.raises(IllegalTransition):
        lifecycle.transition(order, OrderStatus.CONFIRMED, VENDOR)


def test_timestamps_never_go_backwards(lifecycle, new_order, clock):
    order = new_order()
    clock.advance(minutes=-30)  # server clock skew
    order = lifecycle.transition(order, OrderStatus.CONFIRMED, VENDOR)
    assert order.timeline.confirmed >= order.timeline.ordered


def test_customer_cannot_confirm(lifecycle, new_order):
    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(new_order(), OrderStatus.CONFIRMED, CUSTOMER)


def test_only_assigned_driver_can_pick_up(lifecycle, new_order, store):
    order = _bind_driver(store, _to_ready(lifecycle, new_order()), "drv-1")

    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(order, OrderStatus.PICKED_UP, Actor.driver("drv-2"))

    order = lifecycle.transition(order, OrderStatus.PICKED_UP, Actor.driver("drv-1"))
    order = lifecycle.transition(order, OrderStatus.DELIVERED, Actor.driver("drv-1"))
    assert order.status == OrderStatus.DELIVERED
    assert order.timeline.delivered is not None


def test_vendor_cannot_mark_delivered(lifecycle, new_order, store):
    order = _bind_driver(store, _to_ready(lifecycle, new_order()), "drv-1")
    order = lifecycle.transition(order, OrderStatus.PICKED_UP, ADMIN)
    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(order, OrderStatus.DELIVERED, VENDOR)


def test_customer_can_cancel_before_pickup(lifecycle, new_order):
    order = lifecycle.transition(new_order(), OrderStatus.CANCELLED, CUSTOMER, reason="changed my mind")

    assert order.status == OrderStatus.CANCELLED
    assert order.cancelled_by == CUSTOMER
    assert order.cancellation_reason == "changed my mind"
    assert order.timeline.cancelled is not None


def test_cancel_after_pickup_needs_admin_and_reason(lifecycle, new_order, store):
    order = _bind_driver(store, _to_ready(lifecycle, new_order()), "drv-1")
    order = lifecycle.transition(order, OrderStatus.PICKED_UP, Actor.driver("drv-1"))

    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(order, OrderStatus.CANCELLED, CUSTOMER, reason="late")
    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(order, OrderStatus.CANCELLED, ADMIN)

    order = lifecycle.transition(order, OrderStatus.CANCELLED, ADMIN, reason="rider accident")
    assert order.status == OrderStatus.CANCELLED
    assert order.cancelled_by == ADMIN


def test_terminal_orders_do_not_move(lifecycle, new_order):
    order = lifecycle.transition(new_order(), OrderStatus.CANCELLED, ADMIN)
    with pytest.raises(IllegalTransition):
        lifecycle.transition(order, OrderStatus.CONFIRMED, ADMIN)
    # cancelling again is the idempotent no-op
    assert lifecycle.transition(order, OrderStatus.CANCELLED, ADMIN) == order


def test_stale_snapshot_raises_version_conflict(lifecycle, new_order):
    stale = new_order()
    lifecycle.transition(stale, OrderStatus.CONFIRMED, VENDOR)
    with pytest.raises(VersionConflict):
        lifecycle.transition(stale, OrderStatus.PREPARING, VENDOR)


def test_tracking_is_append_only(lifecycle, new_order):
    order = new_order()
    before = order.tracking
    order = _to_ready(lifecycle, order)

    assert order.tracking[:len(before)] == before
    assert [u.status for u in order.tracking] == ["pending", "confirmed", "preparing", "ready"]


def test_status_accepts_plain_strings(lifecycle, new_order):
    assert lifecycle.transition(new_order(), "confirmed", VENDOR).status == OrderStatus.CONFIRMED


def test_customer_reapplying_current_status_gets_stored_order(lifecycle, new_order, notifier):
    order = lifecycle.transition(new_order(), OrderStatus.CONFIRMED, VENDOR)

    # customers may not confirm, but a repeat of what already happened changes nothing
    assert lifecycle.transition(order, OrderStatus.CONFIRMED, CUSTOMER) == order
    with pytest.raises(UnauthorizedActor):
        lifecycle.transition(order, OrderStatus.PREPARING, CUSTOMER)
    assert len(notifier.of_type(OrderStatusChanged)) == 1


def test_concurrent_confirms_commit_once(lifecycle, new_order, store, clock, notifier):
    order = new_order()
    clock.advance(minutes=2)
    results = []
    barrier = threading.Barrier(8)

    def confirm():
        barrier.wait()
        results.append(lifecycle.transition(order, OrderStatus.CONFIRMED, VENDOR))

    threads = [threading.Thread(target=confirm) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    stored = store.get(order.id)
    assert len(results) == 8
    assert all(result == stored for result in results)
    assert stored.version == 2
    assert stored.timeline.confirmed == clock.now
    assert [u.status for u in stored.tracking] == ["pending", "confirmed"]
    assert len(notifier.of_type(OrderStatusChanged)) == 1
