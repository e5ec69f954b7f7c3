"""Order-related data models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from order_tracker.models.status import OrderStatus
from order_tracker.models.tracking import OrderTracking
from order_tracker.utils.clock import utcnow


class PaymentMethod(str, Enum):
    """Payment is collected at the door."""

    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD_ON_DELIVERY = "card_on_delivery"


class CustomerRef(BaseModel):
    """Customer contact details copied onto the order."""

    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class RestaurantRef(BaseModel):
    """Restaurant the order was placed with."""

    id: str
    name: str | None = None


class DeliveryAddress(BaseModel):
    """Where the order is delivered."""

    address: str
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)


class OrderItem(BaseModel):
    """Individual item in an order."""

    name: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    subtotal: Decimal = Field(default=Decimal("0.00"), ge=0)
    special_instructions: str | None = None

    def calculate_subtotal(self) -> Decimal:
        """Calculate subtotal for this item."""
        self.subtotal = self.unit_price * Decimal(self.quantity)
        return self.subtotal


class Order(BaseModel):
    """Complete order details."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    customer: CustomerRef
    restaurant: RestaurantRef
    status: OrderStatus = OrderStatus.PENDING

    # Items
    items: list[OrderItem] = Field(default_factory=list)

    # Pricing
    subtotal: Decimal = Field(default=Decimal("0.00"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    total: Decimal = Field(default=Decimal("0.00"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY

    # Delivery details
    delivery_address: DeliveryAddress | None = None
    special_instructions: str | None = None
    delivery_instructions: str | None = None

    # Tracking
    tracking: OrderTracking | None = None

    # Timing
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def calculate_totals(self) -> None:
        """Calculate all order totals."""
        self.subtotal = sum((item.calculate_subtotal() for item in self.items), Decimal("0.00"))
        self.total = self.subtotal + self.delivery_fee

    def add_item(self, item: OrderItem) -> None:
        """Add an item to the order."""
        self.items.append(item)
        self.calculate_totals()

    def ensure_tracking(self) -> OrderTracking:
        """Return the tracking record, synthesizing the initial one if missing."""
        if self.tracking is None:
            self.tracking = OrderTracking.initial(self.id, placed_at=self.created_at)
        return self.tracking
