"""Data models for the order tracker."""

from order_tracker.models.driver import Driver, DriverLocation, Location, Vehicle, VehicleType
from order_tracker.models.events import OrderEvent, OrderEventType
from order_tracker.models.order import (
    CustomerRef,
    DeliveryAddress,
    Order,
    OrderItem,
    PaymentMethod,
    RestaurantRef,
)
from order_tracker.models.status import DeliveryStatus, OrderStatus, UpdatedBy
from order_tracker.models.tracking import (
    ActualTimes,
    CustomerInteraction,
    EstimatedTimes,
    InteractionStatus,
    InteractionType,
    LocationPoint,
    NotificationChannel,
    NotificationRecord,
    OrderTracking,
    StatusUpdate,
    TrackingTimestamps,
)

__all__ = [
    # Status
    "OrderStatus",
    "DeliveryStatus",
    "UpdatedBy",
    # Driver
    "Driver",
    "DriverLocation",
    "Location",
    "Vehicle",
    "VehicleType",
    # Order
    "Order",
    "OrderItem",
    "CustomerRef",
    "RestaurantRef",
    "DeliveryAddress",
    "PaymentMethod",
    # Tracking
    "OrderTracking",
    "TrackingTimestamps",
    "EstimatedTimes",
    "ActualTimes",
    "StatusUpdate",
    "LocationPoint",
    "NotificationChannel",
    "NotificationRecord",
    "CustomerInteraction",
    "InteractionType",
    "InteractionStatus",
    # Events
    "OrderEvent",
    "OrderEventType",
]
