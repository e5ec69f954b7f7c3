"""Tests for real-time order observers."""

import asyncio
from datetime import timedelta

import pytest

from order_tracker.models.order import CustomerRef, Order, RestaurantRef
from order_tracker.models.status import OrderStatus, UpdatedBy
from order_tracker.services.observers import (
    NewOrderDetector,
    OrderObserverHub,
    StatusChangeDetector,
)
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import StateManager
from order_tracker.state.orders import (
    ALL_ORDERS_CHANNEL,
    OrderRepository,
    order_channel,
    restaurant_channel,
)
from order_tracker.utils.clock import utcnow


@pytest.fixture
def hub(repository: OrderRepository, state_manager: StateManager) -> OrderObserverHub:
    return OrderObserverHub(repository, state_manager)


def _order(order_id: str, status: OrderStatus = OrderStatus.PENDING) -> Order:
    return Order(
        id=order_id,
        customer=CustomerRef(id="cust_1"),
        restaurant=RestaurantRef(id="rest_1"),
        status=status,
    )


@pytest.mark.asyncio
async def test_order_subscribers_receive_fresh_copy(
    hub: OrderObserverHub,
    tracking_service: OrderTrackingService,
    placed_order: Order,
) -> None:
    """Test that every subscriber gets the stored order now and after a change."""
    first: list[Order] = []
    second: list[Order] = []
    await hub.subscribe_to_order("O1", first.append)
    await hub.subscribe_to_order("O1", second.append)

    await tracking_service.update_order_status("O1", OrderStatus.CONFIRMED, UpdatedBy.RESTAURANT)
    await hub.handle_message(order_channel("O1"))

    assert [order.status for order in first] == [OrderStatus.PENDING, OrderStatus.CONFIRMED]
    assert [order.status for order in second] == [OrderStatus.PENDING, OrderStatus.CONFIRMED]


@pytest.mark.asyncio
async def test_unsubscribe_stops_delivery(hub: OrderObserverHub, placed_order: Order) -> None:
    received: list[Order] = []
    unsubscribe = await hub.subscribe_to_order("O1", received.append)

    await hub.handle_message(order_channel("O1"))
    unsubscribe()
    await hub.handle_message(order_channel("O1"))

    # Initial snapshot plus one change notice
    assert len(received) == 2
    assert hub.subscriber_count(order_channel("O1")) == 0

    # Calling it twice is harmless
    unsubscribe()


@pytest.mark.asyncio
async def test_unsubscribe_during_delivery(hub: OrderObserverHub, placed_order: Order) -> None:
    """Test that a subscription removed mid-fan-out is skipped."""
    late: list[Order] = []
    unsubscribers: list = []

    def early(order: Order) -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    await hub.subscribe_to_order("O1", early)
    unsubscribers.append(await hub.subscribe_to_order("O1", late.append))
    late.clear()

    await hub.handle_message(order_channel("O1"))

    assert late == []
    assert hub.subscriber_count(order_channel("O1")) == 1


@pytest.mark.asyncio
async def test_async_and_failing_callbacks(hub: OrderObserverHub, placed_order: Order) -> None:
    """Test that a raising callback does not starve the others."""
    received: list[str] = []

    def broken(order: Order) -> None:
        raise RuntimeError("subscriber bug")

    async def slow(order: Order) -> None:
        await asyncio.sleep(0)
        received.append(order.id)

    await hub.subscribe_to_order("O1", broken)
    await hub.subscribe_to_order("O1", slow)

    await hub.handle_message(order_channel("O1"))

    assert received == ["O1", "O1"]


@pytest.mark.asyncio
async def test_missing_order_not_delivered(hub: OrderObserverHub) -> None:
    received: list[Order] = []
    await hub.subscribe_to_order("ghost", received.append)

    await hub.handle_message(order_channel("ghost"))

    assert received == []


@pytest.mark.asyncio
async def test_restaurant_and_global_lists(
    hub: OrderObserverHub,
    repository: OrderRepository,
) -> None:
    """Test list subscribers get orders newest first."""
    older = _order("A")
    older.created_at = utcnow() - timedelta(minutes=5)
    await repository.create_order(older)
    await repository.create_order(_order("B"))

    restaurant_lists: list[list[Order]] = []
    global_lists: list[list[Order]] = []
    await hub.subscribe_to_restaurant_orders("rest_1", restaurant_lists.append)
    await hub.subscribe_to_all_orders(global_lists.append)

    assert [order.id for order in restaurant_lists[0]] == ["B", "A"]
    assert [order.id for order in global_lists[0]] == ["B", "A"]

    newest = _order("C")
    newest.created_at = utcnow() + timedelta(minutes=5)
    await repository.create_order(newest)
    await hub.handle_message(restaurant_channel("rest_1"))
    await hub.handle_message(ALL_ORDERS_CHANNEL)

    assert [order.id for order in restaurant_lists[-1]] == ["C", "B", "A"]
    assert [order.id for order in global_lists[-1]] == ["C", "B", "A"]


@pytest.mark.asyncio
async def test_live_pubsub_delivery(
    hub: OrderObserverHub,
    tracking_service: OrderTrackingService,
    placed_order: Order,
) -> None:
    """Test that a committed change reaches a subscriber through Redis."""
    delivered = asyncio.Event()
    received: list[Order] = []

    def on_change(order: Order) -> None:
        received.append(order)
        if order.status == OrderStatus.CONFIRMED:
            delivered.set()

    await hub.subscribe_to_order("O1", on_change)
    await hub.start()
    try:
        await tracking_service.update_order_status(
            "O1", OrderStatus.CONFIRMED, UpdatedBy.RESTAURANT
        )
        await asyncio.wait_for(delivered.wait(), timeout=5)
    finally:
        await hub.stop()

    assert received[-1].status == OrderStatus.CONFIRMED


@pytest.mark.asyncio
async def test_first_new_order_after_subscribing_is_detected(
    hub: OrderObserverHub,
    repository: OrderRepository,
) -> None:
    """Test that the snapshot delivered on subscribe primes the detector."""
    await repository.create_order(_order("A"))

    detector = NewOrderDetector()
    found: list[str] = []
    await hub.subscribe_to_restaurant_orders(
        "rest_1",
        lambda orders: found.extend(order.id for order in detector.detect(orders)),
    )
    assert found == []

    await repository.create_order(_order("N1"))
    await hub.handle_message(restaurant_channel("rest_1"))

    assert found == ["N1"]


@pytest.mark.asyncio
async def test_first_order_of_empty_restaurant_is_detected(
    hub: OrderObserverHub,
    repository: OrderRepository,
) -> None:
    detector = NewOrderDetector()
    found: list[str] = []
    await hub.subscribe_to_restaurant_orders(
        "rest_1",
        lambda orders: found.extend(order.id for order in detector.detect(orders)),
    )

    await repository.create_order(_order("N1"))
    await hub.handle_message(restaurant_channel("rest_1"))

    assert found == ["N1"]


def test_new_order_detector() -> None:
    """Test that the first snapshot only primes the detector."""
    detector = NewOrderDetector()

    assert detector.detect([_order("A")]) == []

    found = detector.detect([_order("A"), _order("B"), _order("C", OrderStatus.CONFIRMED)])
    assert [order.id for order in found] == ["B"]

    assert detector.detect([_order("A"), _order("B")]) == []


def test_new_order_detector_empty_first_snapshot() -> None:
    detector = NewOrderDetector()

    assert detector.detect([]) == []
    assert [order.id for order in detector.detect([_order("A")])] == ["A"]


def test_status_change_detector() -> None:
    detector = StatusChangeDetector()

    assert detector.detect([_order("A"), _order("B")]) == []

    changes = detector.detect([_order("A", OrderStatus.CONFIRMED), _order("B")])
    assert [(order.id, previous) for order, previous in changes] == [
        ("A", OrderStatus.PENDING)
    ]

    # Unseen orders are not changes
    assert detector.detect([_order("A", OrderStatus.CONFIRMED), _order("D")]) == []
