"""Real-time observers for order changes.

Every committed order write is announced on Redis pub/sub. The hub listens on
those channels, re-reads the affected record(s) and hands fresh ``Order``
models to whoever subscribed locally. A new subscriber first receives the
current state, then every change after it.
"""

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from order_tracker.models.order import Order
from order_tracker.models.status import OrderStatus
from order_tracker.state.manager import StateManager
from order_tracker.state.orders import (
    ALL_ORDERS_CHANNEL,
    OrderRepository,
    order_channel,
    restaurant_channel,
)
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_PREFIX = "order:"
RESTAURANT_PREFIX = "orders:restaurant:"

OrderCallback = Callable[[Order], "None | Awaitable[None]"]
OrderListCallback = Callable[[list[Order]], "None | Awaitable[None]"]


@dataclass(eq=False)
class _Subscription:
    channel: str
    callback: Callable[[Any], Any]
    active: bool = True


class OrderObserverHub:
    """Fans order changes out to local subscribers."""

    def __init__(self, repository: OrderRepository, state_manager: StateManager):
        self.repository = repository
        self.state = state_manager
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)
        self._pubsub = None
        self._task: asyncio.Task | None = None

    async def subscribe_to_order(
        self,
        order_id: str,
        callback: OrderCallback,
    ) -> Callable[[], None]:
        """Call ``callback`` with the order now and every time it changes."""
        return await self._subscribe(order_channel(order_id), callback)

    async def subscribe_to_restaurant_orders(
        self,
        restaurant_id: str,
        callback: OrderListCallback,
    ) -> Callable[[], None]:
        """Call ``callback`` with the restaurant's orders, newest first, now and on any change."""
        return await self._subscribe(restaurant_channel(restaurant_id), callback)

    async def subscribe_to_all_orders(self, callback: OrderListCallback) -> Callable[[], None]:
        """Call ``callback`` with every order, newest first, now and on any change."""
        return await self._subscribe(ALL_ORDERS_CHANNEL, callback)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscriptions.get(channel, []))

    async def handle_message(self, channel: str) -> None:
        """Re-read whatever a change notice refers to and deliver it."""
        subscriptions = list(self._subscriptions.get(channel, []))
        if not subscriptions:
            return

        payload = await self._load(channel)
        if payload is None:
            return

        for subscription in subscriptions:
            # Unsubscribed while earlier callbacks ran
            if not subscription.active:
                continue
            await self._invoke(subscription, payload)

    async def start(self) -> None:
        """Subscribe to change notices and start the listener task."""
        if self._task is not None:
            return

        self._pubsub = await self.state.pubsub()
        await self._pubsub.psubscribe(f"{ORDER_PREFIX}*", "orders:*")
        self._task = asyncio.create_task(self._listen())
        logger.info("order_observer_started")

    async def stop(self) -> None:
        """Stop listening and release the pub/sub connection."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub is not None:
            await self._pubsub.punsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None

        logger.info("order_observer_stopped")

    async def _listen(self) -> None:
        while True:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message and message["type"] in ("message", "pmessage"):
                    await self.handle_message(message["channel"])
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("order_observer_error", error=str(e))
                await asyncio.sleep(1.0)

    async def _subscribe(
        self,
        channel: str,
        callback: Callable[[Any], Any],
    ) -> Callable[[], None]:
        subscription = _Subscription(channel=channel, callback=callback)
        self._subscriptions[channel].append(subscription)
        logger.debug("observer_subscribed", channel=channel)

        def unsubscribe() -> None:
            subscription.active = False
            subscribers = self._subscriptions.get(channel, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscriptions.pop(channel, None)
            logger.debug("observer_unsubscribed", channel=channel)

        # Initial snapshot, so list consumers start from the current state
        payload = await self._load(channel)
        if payload is not None and subscription.active:
            await self._invoke(subscription, payload)

        return unsubscribe

    async def _load(self, channel: str) -> Any:
        """Current order or order list behind a channel, None if there is none."""
        if channel == ALL_ORDERS_CHANNEL:
            return await self.repository.list_all_orders()
        if channel.startswith(RESTAURANT_PREFIX):
            return await self.repository.list_restaurant_orders(channel[len(RESTAURANT_PREFIX):])
        if channel.startswith(ORDER_PREFIX):
            return await self.repository.get_order(channel[len(ORDER_PREFIX):])
        return None

    async def _invoke(self, subscription: _Subscription, payload: Any) -> None:
        try:
            result = subscription.callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("observer_callback_failed", channel=subscription.channel, error=str(e))


class NewOrderDetector:
    """Finds newly placed orders by diffing consecutive snapshots.

    The first snapshot only primes the detector; afterwards every order whose
    id was not in the previous snapshot and whose status is pending counts as
    new.
    """

    def __init__(self) -> None:
        self._previous_ids: set[str] | None = None

    def detect(self, orders: list[Order]) -> list[Order]:
        current_ids = {order.id for order in orders}
        previous_ids = self._previous_ids
        self._previous_ids = current_ids

        if previous_ids is None:
            return []

        return [
            order
            for order in orders
            if order.id not in previous_ids and order.status == OrderStatus.PENDING
        ]


class StatusChangeDetector:
    """Finds orders whose status differs from the previous snapshot."""

    def __init__(self) -> None:
        self._previous: dict[str, OrderStatus] = {}

    def detect(self, orders: list[Order]) -> list[tuple[Order, OrderStatus]]:
        changes = [
            (order, self._previous[order.id])
            for order in orders
            if order.id in self._previous and self._previous[order.id] != order.status
        ]
        self._previous = {order.id: order.status for order in orders}
        return changes
