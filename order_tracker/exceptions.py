"""Exceptions raised inside the tracking core.

Public service operations catch these at their boundary and report a plain
boolean; they are raised only between internal layers.
"""


class TrackingError(Exception):
    """Base class for tracking failures."""


class OrderNotFoundError(TrackingError):
    """The referenced order does not exist in the store."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderExistsError(TrackingError):
    """An order with the same id was already placed."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} already exists")
        self.order_id = order_id


class InvalidStatusError(TrackingError):
    """The requested status is not a member of the order status enum."""

    def __init__(self, status: object):
        super().__init__(f"Invalid order status: {status!r}")
        self.status = status


class InvalidTransitionError(TrackingError):
    """The requested status change is not on the allowed path."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Cannot move order from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class DriverUnavailableError(TrackingError):
    """The driver is already delivering another order."""

    def __init__(self, driver_id: str, active_order_id: str):
        super().__init__(f"Driver {driver_id} is active on order {active_order_id}")
        self.driver_id = driver_id
        self.active_order_id = active_order_id


class PersistenceError(TrackingError):
    """The store rejected a read or write, or a write kept conflicting."""


class NotificationError(TrackingError):
    """A notification channel failed to send."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel
