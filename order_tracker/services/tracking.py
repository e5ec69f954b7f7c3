"""Order tracking operations: status transitions, driver assignment, locations."""

import time
from typing import Any

from order_tracker.config import get_settings
from order_tracker.exceptions import (
    DriverUnavailableError,
    InvalidStatusError,
    InvalidTransitionError,
    TrackingError,
)
from order_tracker.models.driver import Driver, DriverLocation
from order_tracker.models.events import OrderEvent, OrderEventType
from order_tracker.models.order import Order
from order_tracker.models.status import DeliveryStatus, OrderStatus, UpdatedBy
from order_tracker.models.tracking import (
    CustomerInteraction,
    EstimatedTimes,
    InteractionStatus,
    InteractionType,
    LocationPoint,
    NotificationRecord,
    OrderTracking,
    StatusUpdate,
)
from order_tracker.services import timing
from order_tracker.state.manager import StateWrite
from order_tracker.state.orders import (
    OrderMutator,
    OrderRepository,
    OrderUpdate,
    driver_active_key,
    order_key,
)
from order_tracker.state.workflow import (
    OrderTransitions,
    delivery_status_for,
    milestone_for,
    parse_status,
    status_description,
)
from order_tracker.utils.clock import utcnow
from order_tracker.utils.logging import TrackingLogger


class OrderTrackingService:
    """
    Owns every mutation of an order's tracking record.

    Each public operation loads the order, mutates it in memory and commits
    it in a single optimistic transaction. Failures of any kind are logged
    and reported as ``False``; the stored order is left untouched.
    """

    def __init__(self, repository: OrderRepository):
        self.repository = repository
        self.settings = get_settings()
        self.logger = TrackingLogger("order_tracking")

    async def get_order_tracking(self, order_id: str) -> OrderTracking | None:
        """Tracking record of an order, or None if it cannot be read."""
        try:
            return await self.repository.get_order_tracking(order_id)
        except Exception as e:
            self.logger.log_error("get_order_tracking", order_id, str(e))
            return None

    async def update_order_status(
        self,
        order_id: str,
        status: OrderStatus | str,
        updated_by: UpdatedBy | str,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """
        Move an order to a new status.

        Args:
            order_id: Order to update
            status: Target status
            updated_by: Actor performing the change
            description: Optional text, defaults to the status description
            metadata: Optional diagnostic key-value data

        Returns:
            True if the change was committed
        """

        async def _transition(order: Order, update: OrderUpdate) -> None:
            target = self._parse_status(status)
            actor = UpdatedBy(updated_by)
            tracking = order.ensure_tracking()
            previous = tracking.status
            self._check_transition(previous, target)

            now = utcnow()
            entry = StatusUpdate(
                status=target,
                timestamp=now,
                description=description or status_description(target),
                updated_by=actor,
                metadata=metadata,
            )
            tracking.status_updates.append(entry)
            tracking.status = target
            order.status = target

            milestone = milestone_for(target)
            if milestone:
                tracking.timestamps.record(milestone, now)

            tracking.delivery_status = delivery_status_for(target)
            timing.refresh_actual_times(tracking)

            if OrderTransitions.is_terminal(target) and tracking.driver:
                await self._release_driver(order, tracking.driver.id, update)

            update.emit(
                OrderEvent(
                    event_type=OrderEventType.STATUS_CHANGED,
                    order_id=order.id,
                    status=target,
                    description=entry.description,
                    occurred_at=now,
                    metadata={"updated_by": actor.value, "previous_status": previous.value},
                )
            )

            transition["from"] = previous
            transition["to"] = target
            transition["by"] = actor

        transition: dict[str, Any] = {}
        success = await self._run("update_order_status", order_id, _transition)

        if success:
            self.logger.log_transition(
                order_id,
                from_status=transition["from"].value,
                to_status=transition["to"].value,
                updated_by=transition["by"].value,
            )

        return success

    async def assign_driver(self, order_id: str, driver: Driver) -> bool:
        """
        Attach a driver to an order and move it to ASSIGNED.

        Args:
            order_id: Order to deliver
            driver: Fully populated driver profile

        Returns:
            True if the assignment was committed
        """

        async def _assign(order: Order, update: OrderUpdate) -> None:
            tracking = order.ensure_tracking()
            self._check_transition(tracking.status, OrderStatus.ASSIGNED)

            active_key = driver_active_key(driver.id)
            active = await update.get(active_key)
            if active and active.get("order_id") != order.id:
                other = await update.get(order_key(active["order_id"]))
                if other and not OrderTransitions.is_terminal(OrderStatus(other["status"])):
                    raise DriverUnavailableError(driver.id, active["order_id"])

            if tracking.driver and tracking.driver.id != driver.id:
                await self._release_driver(order, tracking.driver.id, update)

            now = utcnow()
            tracking.driver = driver
            tracking.delivery_status = DeliveryStatus.DRIVER_ASSIGNED
            tracking.timestamps.record("driver_assigned", now)

            description = f"{driver.name} teslimatçınız atandı"
            tracking.status_updates.append(
                StatusUpdate(
                    status=OrderStatus.ASSIGNED,
                    timestamp=now,
                    description=description,
                    updated_by=UpdatedBy.SYSTEM,
                    metadata={"driver_id": driver.id},
                )
            )
            tracking.status = OrderStatus.ASSIGNED
            order.status = OrderStatus.ASSIGNED

            update.write(StateWrite.set(active_key, {"order_id": order.id}))
            update.emit(
                OrderEvent(
                    event_type=OrderEventType.DRIVER_ASSIGNED,
                    order_id=order.id,
                    status=OrderStatus.ASSIGNED,
                    description=description,
                    occurred_at=now,
                    metadata={"driver_id": driver.id, "driver_name": driver.name},
                )
            )

        return await self._run("assign_driver", order_id, _assign)

    async def update_location(
        self,
        order_id: str,
        lat: float,
        lng: float,
        status: OrderStatus | str,
        description: str | None = None,
    ) -> bool:
        """Append a breadcrumb and move the assigned driver's position."""

        def _locate(order: Order, update: OrderUpdate) -> None:
            tracking = order.ensure_tracking()
            now = utcnow()

            tracking.location_history.append(
                LocationPoint(
                    lat=lat,
                    lng=lng,
                    timestamp=now,
                    status=self._parse_status(status),
                    description=description,
                )
            )

            if tracking.driver:
                tracking.driver.current_location = DriverLocation(lat=lat, lng=lng, timestamp=now)

        return await self._run("update_location", order_id, _locate)

    async def add_customer_interaction(
        self,
        order_id: str,
        interaction_type: InteractionType | str,
        notes: str | None = None,
    ) -> bool:
        """Log a customer request against an order; it stays pending."""

        def _interact(order: Order, update: OrderUpdate) -> None:
            tracking = order.ensure_tracking()
            tracking.customer_interactions.append(
                CustomerInteraction(
                    type=InteractionType(interaction_type),
                    status=InteractionStatus.PENDING,
                    notes=notes,
                )
            )

        return await self._run("add_customer_interaction", order_id, _interact)

    async def resolve_customer_interaction(
        self,
        order_id: str,
        index: int,
        approved: bool,
    ) -> bool:
        """Mark a pending customer interaction as approved or rejected."""

        def _resolve(order: Order, update: OrderUpdate) -> None:
            interactions = order.ensure_tracking().customer_interactions
            if index < 0 or index >= len(interactions):
                raise TrackingError(f"No customer interaction at index {index}")

            interaction = interactions[index]
            if interaction.status != InteractionStatus.PENDING:
                raise TrackingError(f"Interaction {index} already {interaction.status.value}")

            interaction.status = (
                InteractionStatus.APPROVED if approved else InteractionStatus.REJECTED
            )
            interaction.resolved_at = utcnow()

        return await self._run("resolve_customer_interaction", order_id, _resolve)

    async def set_estimated_times(
        self,
        order_id: str,
        preparation_minutes: float,
        distance_km: float,
        traffic_factor: float = 1.0,
    ) -> bool:
        """Store planned preparation, delivery and total minutes."""

        def _estimate(order: Order, update: OrderUpdate) -> None:
            minutes_per_km = self.settings.minutes_per_km
            order.ensure_tracking().estimated_times = EstimatedTimes(
                preparation=round(preparation_minutes),
                delivery=round(distance_km * minutes_per_km * traffic_factor),
                total=timing.calculate_estimated_delivery_time(
                    preparation_minutes,
                    distance_km,
                    traffic_factor,
                    minutes_per_km=minutes_per_km,
                ),
            )

        return await self._run("set_estimated_times", order_id, _estimate)

    async def record_notifications(
        self,
        order_id: str,
        records: list[NotificationRecord],
    ) -> bool:
        """Append notification attempt results to the order's history."""

        def _record(order: Order, update: OrderUpdate) -> None:
            order.ensure_tracking().notifications.extend(records)

        return await self._run("record_notifications", order_id, _record)

    async def get_driver_eta(self, order_id: str) -> int | None:
        """Minutes until the assigned driver reaches the delivery address."""
        try:
            order = await self.repository.get_order(order_id)
        except Exception as e:
            self.logger.log_error("get_driver_eta", order_id, str(e))
            return None

        if not order or not order.tracking or not order.tracking.driver:
            return None

        location = order.tracking.driver.current_location
        address = order.delivery_address
        if not location or not address or address.lat is None or address.lng is None:
            return None

        distance_km = timing.calculate_distance_km(
            location.lat, location.lng, address.lat, address.lng
        )
        return timing.estimate_travel_minutes(distance_km, self.settings.urban_speed_kmh)

    async def _run(self, operation: str, order_id: str, mutate: OrderMutator) -> bool:
        """Commit a mutation, converting every failure into False."""
        start_time = time.time()

        try:
            await self.repository.update_order(order_id, mutate)

        except Exception as e:
            self.logger.log_error(
                operation,
                order_id,
                str(e),
                error_type=type(e).__name__,
                duration_ms=(time.time() - start_time) * 1000,
            )
            return False

        self.logger.log_operation(
            operation,
            order_id,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return True

    def _parse_status(self, status: OrderStatus | str) -> OrderStatus:
        try:
            return parse_status(status)
        except ValueError:
            raise InvalidStatusError(status) from None

    def _check_transition(self, current: OrderStatus, target: OrderStatus) -> None:
        if self.settings.strict_transitions and not OrderTransitions.can_transition(
            current, target
        ):
            raise InvalidTransitionError(current.value, target.value)

    async def _release_driver(self, order: Order, driver_id: str, update: OrderUpdate) -> None:
        """Free a driver whose active order is this one."""
        key = driver_active_key(driver_id)
        active = await update.get(key)
        if active and active.get("order_id") == order.id:
            update.write(StateWrite.delete(key))
