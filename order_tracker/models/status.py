"""Order and delivery status enums."""

from enum import Enum


class OrderStatus(str, Enum):
    """Order status progression."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERING = "delivering"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class DeliveryStatus(str, Enum):
    """Coarse delivery progress derived from the order status."""

    NOT_STARTED = "not_started"
    ASSIGNING_DRIVER = "assigning_driver"
    DRIVER_ASSIGNED = "driver_assigned"
    DRIVER_PICKING_UP = "driver_picking_up"
    DRIVER_ON_WAY = "driver_on_way"
    DRIVER_ARRIVED = "driver_arrived"
    DELIVERED = "delivered"
    FAILED = "failed"


class UpdatedBy(str, Enum):
    """Actor performing a status change."""

    SYSTEM = "system"
    RESTAURANT = "restaurant"
    DRIVER = "driver"
    CUSTOMER = "customer"
