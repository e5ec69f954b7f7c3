"""Order tracking services."""

from order_tracker.services.notifications import NotificationDispatcher
from order_tracker.services.observers import (
    NewOrderDetector,
    OrderObserverHub,
    StatusChangeDetector,
)
from order_tracker.services.tracking import OrderTrackingService

__all__ = [
    "OrderTrackingService",
    "NotificationDispatcher",
    "OrderObserverHub",
    "NewOrderDetector",
    "StatusChangeDetector",
]
