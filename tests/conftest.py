"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient

from order_tracker.api.routes import get_order_repository
from order_tracker.main import app
from order_tracker.models.driver import Driver, DriverLocation, Vehicle, VehicleType
from order_tracker.models.order import (
    CustomerRef,
    DeliveryAddress,
    Order,
    OrderItem,
    RestaurantRef,
)
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import StateManager
from order_tracker.state.orders import OrderRepository


@pytest_asyncio.fixture
async def state_manager() -> AsyncGenerator[StateManager, None]:
    """Create a state manager backed by an in-memory Redis."""
    manager = StateManager(redis_client=fake_aioredis.FakeRedis(decode_responses=True))
    manager.base_delay = 0
    manager.jitter = 0
    yield manager
    await manager.flush()
    await manager.disconnect()


@pytest.fixture
def repository(state_manager: StateManager) -> OrderRepository:
    """Create a test order repository."""
    return OrderRepository(state_manager)


@pytest.fixture
def tracking_service(repository: OrderRepository) -> OrderTrackingService:
    """Create a test tracking service."""
    return OrderTrackingService(repository)


@pytest_asyncio.fixture
async def test_client(repository: OrderRepository) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the test repository."""
    app.dependency_overrides[get_order_repository] = lambda: repository
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# Sample data fixtures


@pytest.fixture
def sample_customer() -> CustomerRef:
    """Create a sample customer."""
    return CustomerRef(
        id="cust_1",
        name="Test Customer",
        email="test@example.com",
        phone="+905551112233",
    )


@pytest.fixture
def sample_restaurant() -> RestaurantRef:
    """Create a sample restaurant."""
    return RestaurantRef(id="rest_1", name="Test Kebap")


@pytest.fixture
def sample_order(sample_customer: CustomerRef, sample_restaurant: RestaurantRef) -> Order:
    """Create a sample order without tracking."""
    order = Order(
        id="O1",
        customer=sample_customer,
        restaurant=sample_restaurant,
        delivery_address=DeliveryAddress(
            address="Moda Cad. 12, Kadıköy",
            lat=41.0082,
            lng=28.9784,
        ),
        delivery_fee=Decimal("15.00"),
    )
    order.add_item(OrderItem(name="Adana Kebap", quantity=2, unit_price=Decimal("180.00")))
    return order


@pytest_asyncio.fixture
async def placed_order(repository: OrderRepository, sample_order: Order) -> Order:
    """Persist the sample order."""
    return await repository.create_order(sample_order)


@pytest.fixture
def sample_driver() -> Driver:
    """Create a sample driver."""
    return Driver(
        id="D1",
        name="Ali Çelik",
        phone="+905559998877",
        vehicle=Vehicle(type=VehicleType.MOTORCYCLE, plate_number="34 ABC 123"),
        current_location=DriverLocation(lat=41.0182, lng=28.9784),
        rating=4.8,
    )
