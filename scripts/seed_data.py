"""Seed sample orders and walk one of them through delivery."""

import asyncio
from decimal import Decimal

from order_tracker.models.driver import Driver, DriverLocation, Vehicle, VehicleType
from order_tracker.models.order import (
    CustomerRef,
    DeliveryAddress,
    Order,
    OrderItem,
    RestaurantRef,
)
from order_tracker.models.status import OrderStatus, UpdatedBy
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import StateManager
from order_tracker.state.orders import OrderRepository


def sample_orders() -> list[Order]:
    """Orders for two Istanbul restaurants."""
    kebap = RestaurantRef(id="rest_kebap", name="Kadıköy Kebap")
    pide = RestaurantRef(id="rest_pide", name="Beşiktaş Pide")

    orders = [
        Order(
            id="demo-order-1",
            customer=CustomerRef(
                id="cust_1",
                name="Ayşe Yılmaz",
                email="ayse@example.com",
                phone="+905551112233",
            ),
            restaurant=kebap,
            delivery_address=DeliveryAddress(
                address="Moda Cad. 12, Kadıköy", lat=40.9869, lng=29.0257
            ),
            delivery_fee=Decimal("15.00"),
        ),
        Order(
            id="demo-order-2",
            customer=CustomerRef(id="cust_2", name="Mehmet Demir", phone="+905554445566"),
            restaurant=kebap,
            delivery_address=DeliveryAddress(address="Bahariye Cad. 40, Kadıköy"),
        ),
        Order(
            id="demo-order-3",
            customer=CustomerRef(id="cust_3", name="Zeynep Kaya", email="zeynep@example.com"),
            restaurant=pide,
            delivery_address=DeliveryAddress(
                address="Barbaros Bulvarı 5, Beşiktaş", lat=41.0422, lng=29.0083
            ),
        ),
    ]

    orders[0].add_item(OrderItem(name="Adana Kebap", quantity=2, unit_price=Decimal("180.00")))
    orders[0].add_item(OrderItem(name="Ayran", quantity=2, unit_price=Decimal("25.00")))
    orders[1].add_item(OrderItem(name="Lahmacun", quantity=3, unit_price=Decimal("70.00")))
    orders[2].add_item(OrderItem(name="Kıymalı Pide", quantity=1, unit_price=Decimal("160.00")))

    return orders


async def seed_orders(repository: OrderRepository) -> None:
    """Seed sample orders."""
    print("Seeding orders...")

    for order in sample_orders():
        if await repository.get_order(order.id):
            print(f"  • {order.id} already exists, skipping")
            continue
        await repository.create_order(order)
        print(f"  ✓ Added {order.id} ({order.restaurant.name}, total: {order.total})")

    print("✓ Orders seeded successfully\n")


async def advance_demo_order(service: OrderTrackingService) -> None:
    """Move the first demo order through its lifecycle."""
    print("Advancing demo-order-1...")

    driver = Driver(
        id="driver_1",
        name="Ali Çelik",
        phone="+905559998877",
        vehicle=Vehicle(type=VehicleType.MOTORCYCLE, plate_number="34 ABC 123"),
        current_location=DriverLocation(lat=40.9900, lng=29.0300),
    )

    order_id = "demo-order-1"
    steps = [
        ("confirmed", service.update_order_status(order_id, OrderStatus.CONFIRMED, UpdatedBy.RESTAURANT)),
        ("estimated", service.set_estimated_times(order_id, preparation_minutes=20, distance_km=3.5)),
        ("preparing", service.update_order_status(order_id, OrderStatus.PREPARING, UpdatedBy.RESTAURANT)),
        ("ready", service.update_order_status(order_id, OrderStatus.READY, UpdatedBy.RESTAURANT)),
        ("driver assigned", service.assign_driver(order_id, driver)),
        ("picked up", service.update_order_status(order_id, OrderStatus.PICKED_UP, UpdatedBy.DRIVER)),
        ("location", service.update_location(order_id, 40.9880, 29.0280, OrderStatus.PICKED_UP)),
    ]

    for label, step in steps:
        success = await step
        print(f"  {'✓' if success else '✗'} {label}")

    print("✓ Demo order advanced\n")


async def main() -> None:
    """Run all seed functions."""
    print("\n" + "=" * 50)
    print("  Seeding Order Tracking Data")
    print("=" * 50 + "\n")

    state_manager = StateManager()
    await state_manager.connect()

    repository = OrderRepository(state_manager)
    await seed_orders(repository)
    await advance_demo_order(OrderTrackingService(repository))

    await state_manager.disconnect()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
