"""Driver and location models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from order_tracker.utils.clock import utcnow


class VehicleType(str, Enum):
    """Supported courier vehicles."""

    CAR = "car"
    MOTORCYCLE = "motorcycle"
    BICYCLE = "bicycle"
    SCOOTER = "scooter"


class Location(BaseModel):
    """Geographic location."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DriverLocation(Location):
    """Last reported driver position."""

    timestamp: datetime = Field(default_factory=utcnow)


class Vehicle(BaseModel):
    """Courier vehicle details."""

    type: VehicleType = VehicleType.MOTORCYCLE
    model: str | None = None
    plate_number: str | None = None


class Driver(BaseModel):
    """Delivery driver profile."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    phone: str | None = None
    photo_url: str | None = None
    vehicle: Vehicle = Field(default_factory=Vehicle)
    current_location: DriverLocation | None = None
    rating: float = Field(default=5.0, ge=0, le=5)
    total_deliveries: int = 0
    is_online: bool = True
    estimated_arrival: datetime | None = None
