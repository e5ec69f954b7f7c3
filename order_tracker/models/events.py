"""Domain events queued for the notification dispatcher."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from order_tracker.models.status import OrderStatus
from order_tracker.utils.clock import utcnow


class OrderEventType(str, Enum):
    """Kinds of events emitted by tracking operations."""

    STATUS_CHANGED = "status_changed"
    DRIVER_ASSIGNED = "driver_assigned"


class OrderEvent(BaseModel):
    """Event written to the outbox in the same transaction as the order."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: OrderEventType
    order_id: str
    status: OrderStatus
    description: str
    occurred_at: datetime = Field(default_factory=utcnow)
    attempts: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)
