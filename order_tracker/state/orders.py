"""Order persistence on top of the Redis state manager."""

import inspect
import json
from typing import Any, Awaitable, Callable

from order_tracker.config import get_settings
from order_tracker.exceptions import OrderExistsError, OrderNotFoundError
from order_tracker.models.events import OrderEvent
from order_tracker.models.order import Order
from order_tracker.models.tracking import OrderTracking
from order_tracker.state.manager import StateManager, StateWrite, TransactionReader
from order_tracker.utils.clock import utcnow
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)

ALL_ORDERS_KEY = "orders:all"
ALL_ORDERS_CHANNEL = "orders:all"


def order_key(order_id: str) -> str:
    """Redis key holding an order document."""
    return f"order:{order_id}"


def order_channel(order_id: str) -> str:
    """Pub/sub channel announcing changes to one order."""
    return f"order:{order_id}"


def restaurant_orders_key(restaurant_id: str) -> str:
    """Sorted set of a restaurant's order ids, scored by creation time."""
    return f"orders:restaurant:{restaurant_id}"


def restaurant_channel(restaurant_id: str) -> str:
    """Pub/sub channel announcing changes to a restaurant's orders."""
    return f"orders:restaurant:{restaurant_id}"


def driver_active_key(driver_id: str) -> str:
    """Key naming the order a driver is currently delivering."""
    return f"driver:{driver_id}:active_order"


class OrderUpdate:
    """Collects side writes and outbound events while an order is mutated."""

    def __init__(self, reader: TransactionReader):
        self.reader = reader
        self.writes: list[StateWrite] = []
        self.events: list[OrderEvent] = []

    async def get(self, key: str) -> Any:
        """Read (and watch) another key in the same transaction."""
        return await self.reader.get(key)

    def write(self, write: StateWrite) -> None:
        self.writes.append(write)

    def emit(self, event: OrderEvent) -> None:
        self.events.append(event)


OrderMutator = Callable[[Order, OrderUpdate], "None | Awaitable[None]"]


class OrderRepository:
    """Loads, stores, and indexes orders."""

    def __init__(self, state_manager: StateManager):
        self.state = state_manager
        self.settings = get_settings()

    async def create_order(self, order: Order) -> Order:
        """Persist a newly placed order with its initial tracking record."""
        order.ensure_tracking()
        key = order_key(order.id)
        data = order.model_dump(mode="json")

        score = order.created_at.timestamp()

        def _insert(current: Any, reader: TransactionReader) -> list[StateWrite]:
            if current is not None:
                raise OrderExistsError(order.id)
            # Document and both indexes commit together
            return [
                StateWrite.set(key, data),
                StateWrite.zadd(ALL_ORDERS_KEY, {order.id: score}),
                StateWrite.zadd(restaurant_orders_key(order.restaurant.id), {order.id: score}),
            ]

        await self.state.atomic_update(key, _insert)

        logger.info(
            "order_created",
            order_id=order.id,
            restaurant_id=order.restaurant.id,
            customer_id=order.customer.id,
        )

        await self._announce(order)
        return order

    async def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID."""
        data = await self.state.get(order_key(order_id))

        if not data:
            return None

        return Order.model_validate(data)

    async def get_order_tracking(self, order_id: str) -> OrderTracking | None:
        """Tracking record of an order, synthesized if the order has none."""
        order = await self.get_order(order_id)

        if not order:
            return None

        return order.ensure_tracking()

    async def list_restaurant_orders(
        self,
        restaurant_id: str,
        limit: int | None = None,
    ) -> list[Order]:
        """Orders of one restaurant, newest first."""
        return await self._list(restaurant_orders_key(restaurant_id), limit)

    async def list_all_orders(self, limit: int | None = None) -> list[Order]:
        """Every order, newest first."""
        return await self._list(ALL_ORDERS_KEY, limit)

    async def update_order(self, order_id: str, mutate: OrderMutator) -> Order:
        """Atomically apply ``mutate`` to an order and persist the result.

        The order document, any side writes, and any emitted events are
        committed in one transaction. Raises OrderNotFoundError if the order
        does not exist; other exceptions from ``mutate`` abort the write.
        """
        key = order_key(order_id)
        outbox = self.settings.notification_outbox_key
        committed: dict[str, Order] = {}

        async def _apply(current: Any, reader: TransactionReader) -> list[StateWrite]:
            if current is None:
                raise OrderNotFoundError(order_id)

            order = Order.model_validate(current)
            update = OrderUpdate(reader)

            result = mutate(order, update)
            if inspect.isawaitable(result):
                await result

            order.updated_at = utcnow()
            committed["order"] = order

            writes = [StateWrite.set(key, order.model_dump(mode="json"))]
            writes.extend(update.writes)
            writes.extend(
                StateWrite.push(outbox, event.model_dump(mode="json"))
                for event in update.events
            )
            return writes

        await self.state.atomic_update(key, _apply)

        order = committed["order"]
        await self._announce(order)
        return order

    async def _list(self, index_key: str, limit: int | None) -> list[Order]:
        end = -1 if limit is None else limit - 1
        order_ids = await self.state.zrevrange(index_key, 0, end)
        documents = await self.state.mget([order_key(order_id) for order_id in order_ids])
        return [Order.model_validate(data) for data in documents if data]

    async def _announce(self, order: Order) -> None:
        """Publish a change notice; the write has already committed."""
        message = json.dumps(
            {
                "order_id": order.id,
                "restaurant_id": order.restaurant.id,
                "status": order.status.value,
                "updated_at": order.updated_at.isoformat(),
            }
        )

        channels = [
            order_channel(order.id),
            restaurant_channel(order.restaurant.id),
            ALL_ORDERS_CHANNEL,
        ]

        for channel in channels:
            try:
                await self.state.publish(channel, message)
            except Exception as e:
                logger.warning("order_change_publish_failed", channel=channel, error=str(e))
