"""Order status state machine and the fixed lookup tables around it."""

from order_tracker.models.status import DeliveryStatus, OrderStatus

STATUS_DESCRIPTIONS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Siparişiniz alındı ve onay bekliyor",
    OrderStatus.CONFIRMED: "Siparişiniz onaylandı",
    OrderStatus.PREPARING: "Yemeğiniz hazırlanıyor",
    OrderStatus.READY: "Yemeğiniz hazır, teslimatçı bekleniyor",
    OrderStatus.ASSIGNED: "Teslimatçınız atandı",
    OrderStatus.PICKED_UP: "Teslimatçınız yemeğinizi aldı",
    OrderStatus.DELIVERING: "Yemeğiniz yolda",
    OrderStatus.ARRIVED: "Teslimatçınız adresinize vardı",
    OrderStatus.DELIVERED: "Siparişiniz teslim edildi",
    OrderStatus.CANCELLED: "Siparişiniz iptal edildi",
    OrderStatus.REFUNDED: "Siparişiniz iade edildi",
}

# PENDING and REFUNDED have no milestone
MILESTONE_KEYS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed",
    OrderStatus.PREPARING: "preparing",
    OrderStatus.READY: "ready",
    OrderStatus.ASSIGNED: "driver_assigned",
    OrderStatus.PICKED_UP: "picked_up",
    OrderStatus.DELIVERING: "delivering",
    OrderStatus.ARRIVED: "arrived",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
}

DELIVERY_STATUS_MAP: dict[OrderStatus, DeliveryStatus] = {
    OrderStatus.PENDING: DeliveryStatus.NOT_STARTED,
    OrderStatus.CONFIRMED: DeliveryStatus.NOT_STARTED,
    OrderStatus.PREPARING: DeliveryStatus.NOT_STARTED,
    OrderStatus.READY: DeliveryStatus.ASSIGNING_DRIVER,
    OrderStatus.ASSIGNED: DeliveryStatus.DRIVER_ASSIGNED,
    OrderStatus.PICKED_UP: DeliveryStatus.DRIVER_ON_WAY,
    OrderStatus.DELIVERING: DeliveryStatus.DRIVER_ON_WAY,
    OrderStatus.ARRIVED: DeliveryStatus.DRIVER_ARRIVED,
    OrderStatus.DELIVERED: DeliveryStatus.DELIVERED,
    OrderStatus.CANCELLED: DeliveryStatus.FAILED,
    OrderStatus.REFUNDED: DeliveryStatus.FAILED,
}


def status_description(status: OrderStatus) -> str:
    """Default customer-facing description for a status."""
    return STATUS_DESCRIPTIONS[status]


def milestone_for(status: OrderStatus) -> str | None:
    """Timestamp key recorded when an order reaches this status."""
    return MILESTONE_KEYS.get(status)


def delivery_status_for(status: OrderStatus) -> DeliveryStatus:
    """Delivery status derived from an order status."""
    return DELIVERY_STATUS_MAP[status]


def parse_status(value: OrderStatus | str) -> OrderStatus:
    """Coerce a raw value into an OrderStatus, raising ValueError if unknown."""
    if isinstance(value, OrderStatus):
        return value
    return OrderStatus(value)


class OrderTransitions:
    """Valid order status transitions."""

    FORWARD_PATH: list[OrderStatus] = [
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.ASSIGNED,
        OrderStatus.PICKED_UP,
        OrderStatus.DELIVERING,
        OrderStatus.ARRIVED,
        OrderStatus.DELIVERED,
    ]

    TERMINAL: frozenset[OrderStatus] = frozenset(
        {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
    )

    @classmethod
    def is_terminal(cls, status: OrderStatus) -> bool:
        """Check if no further progress is possible from a status."""
        return status in cls.TERMINAL

    @classmethod
    def can_transition(cls, from_state: OrderStatus, to_state: OrderStatus) -> bool:
        """Check if a status transition is valid.

        Re-entering the current status is always allowed so repeated calls
        stay idempotent. Forward moves may skip steps but never go back.
        Cancellation exits any non-terminal status. Refund is accepted from
        every status except itself: besides the non-terminal ones, a delivered
        or cancelled order can still be refunded afterwards (a complaint about
        a delivered meal, money returned for a cancelled prepaid order).
        Nothing leaves REFUNDED.
        """
        if from_state == to_state:
            return True

        if to_state == OrderStatus.REFUNDED:
            return from_state != OrderStatus.REFUNDED

        if cls.is_terminal(from_state):
            return False

        if to_state == OrderStatus.CANCELLED:
            return True

        return cls.FORWARD_PATH.index(to_state) > cls.FORWARD_PATH.index(from_state)
