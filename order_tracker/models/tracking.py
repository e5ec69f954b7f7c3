"""Tracking sub-record embedded in every order."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from order_tracker.models.driver import Driver
from order_tracker.models.status import DeliveryStatus, OrderStatus, UpdatedBy
from order_tracker.utils.clock import utcnow


class NotificationChannel(str, Enum):
    """Outbound notification channels."""

    SMS = "sms"
    EMAIL = "email"
    PUSH = "push"
    IN_APP = "in_app"


class InteractionType(str, Enum):
    """Requests a customer can raise against an order."""

    CALL_DRIVER = "call_driver"
    CALL_RESTAURANT = "call_restaurant"
    CANCEL_REQUEST = "cancel_request"
    MODIFY_REQUEST = "modify_request"


class InteractionStatus(str, Enum):
    """Resolution state of a customer interaction."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StatusUpdate(BaseModel):
    """One entry of the status history."""

    status: OrderStatus
    timestamp: datetime = Field(default_factory=utcnow)
    description: str
    updated_by: UpdatedBy
    metadata: dict[str, Any] | None = None


class LocationPoint(BaseModel):
    """Breadcrumb on the courier's route."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    timestamp: datetime = Field(default_factory=utcnow)
    status: OrderStatus
    description: str | None = None


class NotificationRecord(BaseModel):
    """Result of one notification attempt."""

    channel: NotificationChannel
    sent: bool
    timestamp: datetime = Field(default_factory=utcnow)
    content: str
    error: str | None = None


class CustomerInteraction(BaseModel):
    """Customer request awaiting manual handling."""

    type: InteractionType
    timestamp: datetime = Field(default_factory=utcnow)
    status: InteractionStatus = InteractionStatus.PENDING
    notes: str | None = None
    resolved_at: datetime | None = None


class TrackingTimestamps(BaseModel):
    """Milestone timestamps, each written at most once."""

    order_placed: datetime = Field(default_factory=utcnow)
    confirmed: datetime | None = None
    preparing: datetime | None = None
    ready: datetime | None = None
    driver_assigned: datetime | None = None
    picked_up: datetime | None = None
    delivering: datetime | None = None
    arrived: datetime | None = None
    delivered: datetime | None = None
    cancelled: datetime | None = None

    def record(self, milestone: str, when: datetime) -> bool:
        """Set a milestone if it is still empty. Returns True if written."""
        if getattr(self, milestone) is not None:
            return False
        setattr(self, milestone, when)
        return True


class EstimatedTimes(BaseModel):
    """Planned durations in minutes."""

    preparation: int = 0
    delivery: int = 0
    total: int = 0


class ActualTimes(BaseModel):
    """Measured durations in minutes; absent until both endpoints exist."""

    preparation: int | None = None
    delivery: int | None = None
    total: int | None = None


class OrderTracking(BaseModel):
    """Complete tracking state of an order."""

    order_id: str
    status: OrderStatus = OrderStatus.PENDING
    delivery_status: DeliveryStatus = DeliveryStatus.NOT_STARTED
    driver: Driver | None = None

    timestamps: TrackingTimestamps = Field(default_factory=TrackingTimestamps)
    estimated_times: EstimatedTimes = Field(default_factory=EstimatedTimes)
    actual_times: ActualTimes = Field(default_factory=ActualTimes)

    # Append-only histories
    location_history: list[LocationPoint] = Field(default_factory=list)
    status_updates: list[StatusUpdate] = Field(default_factory=list)
    notifications: list[NotificationRecord] = Field(default_factory=list)
    customer_interactions: list[CustomerInteraction] = Field(default_factory=list)

    @classmethod
    def initial(cls, order_id: str, placed_at: datetime | None = None) -> "OrderTracking":
        """Tracking for a freshly placed order. No status update is logged."""
        return cls(
            order_id=order_id,
            timestamps=TrackingTimestamps(order_placed=placed_at or utcnow()),
        )

    @property
    def latest_update(self) -> StatusUpdate | None:
        """Most recent status history entry."""
        return self.status_updates[-1] if self.status_updates else None
