"""Tests for the HTTP API."""

import pytest
from httpx import AsyncClient

from order_tracker.models.order import Order


def _order_payload(order_id: str = "API1") -> dict:
    return {
        "id": order_id,
        "customer": {"id": "cust_9", "name": "Zeynep", "phone": "+905550000000"},
        "restaurant": {"id": "rest_api", "name": "Pide Salonu"},
        "items": [{"name": "Kaşarlı Pide", "quantity": 2, "unit_price": "120.00"}],
        "delivery_fee": "10.00",
        "delivery_address": {"address": "Bağdat Cad. 5", "lat": 40.97, "lng": 29.06},
    }


@pytest.mark.asyncio
async def test_health(test_client: AsyncClient) -> None:
    response = await test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "order-tracker"}


@pytest.mark.asyncio
async def test_create_and_fetch_order(test_client: AsyncClient) -> None:
    """Test placing an order through the API."""
    response = await test_client.post("/api/v1/orders", json=_order_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == "API1"
    assert body["status"] == "pending"
    assert body["total"] == "250.00"
    assert body["tracking"]["status_updates"] == []

    fetched = await test_client.get("/api/v1/orders/API1")
    assert fetched.status_code == 200
    assert fetched.json()["restaurant"]["name"] == "Pide Salonu"

    duplicate = await test_client.post("/api/v1/orders", json=_order_payload())
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_create_order_requires_items(test_client: AsyncClient) -> None:
    payload = _order_payload()
    payload["items"] = []

    response = await test_client.post("/api/v1/orders", json=payload)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_missing_order(test_client: AsyncClient) -> None:
    assert (await test_client.get("/api/v1/orders/nope")).status_code == 404
    assert (await test_client.get("/api/v1/orders/nope/tracking")).status_code == 404

    response = await test_client.post(
        "/api/v1/orders/nope/status",
        json={"status": "confirmed", "updated_by": "restaurant"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_updates(test_client: AsyncClient, placed_order: Order) -> None:
    """Test accepted and rejected status changes."""
    response = await test_client.post(
        "/api/v1/orders/O1/status",
        json={"status": "delivered", "updated_by": "driver"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["order"]["tracking"]["delivery_status"] == "delivered"

    backwards = await test_client.post(
        "/api/v1/orders/O1/status",
        json={"status": "preparing", "updated_by": "restaurant"},
    )
    assert backwards.status_code == 409

    unknown = await test_client.post(
        "/api/v1/orders/O1/status",
        json={"status": "FLYING", "updated_by": "restaurant"},
    )
    assert unknown.status_code == 422


@pytest.mark.asyncio
async def test_driver_and_tracking(test_client: AsyncClient, placed_order: Order) -> None:
    """Test assignment, location and the tracking view."""
    before = await test_client.get("/api/v1/orders/O1/tracking")
    assert before.status_code == 200
    assert before.json()["driver_eta_minutes"] is None

    assigned = await test_client.post(
        "/api/v1/orders/O1/driver",
        json={
            "id": "D1",
            "name": "Ali Çelik",
            "vehicle": {"type": "motorcycle"},
            "current_location": {"lat": 41.0182, "lng": 28.9784},
        },
    )
    assert assigned.status_code == 200
    assert assigned.json()["order"]["status"] == "assigned"

    located = await test_client.post(
        "/api/v1/orders/O1/location",
        json={"lat": 41.0082, "lng": 28.9784, "status": "arrived"},
    )
    assert located.status_code == 200

    view = (await test_client.get("/api/v1/orders/O1/tracking")).json()
    assert view["order_id"] == "O1"
    assert view["tracking"]["driver"]["id"] == "D1"
    assert len(view["tracking"]["location_history"]) == 1
    assert view["driver_eta_minutes"] == 0
    assert view["actual_times"] == {}


@pytest.mark.asyncio
async def test_interactions_and_estimate(test_client: AsyncClient, placed_order: Order) -> None:
    created = await test_client.post(
        "/api/v1/orders/O1/interactions",
        json={"type": "call_restaurant", "notes": "Acı olmasın"},
    )
    assert created.status_code == 200

    resolved = await test_client.post(
        "/api/v1/orders/O1/interactions/0/resolve",
        json={"approved": True},
    )
    assert resolved.status_code == 200
    assert resolved.json()["order"]["tracking"]["customer_interactions"][0]["status"] == "approved"

    again = await test_client.post(
        "/api/v1/orders/O1/interactions/0/resolve",
        json={"approved": False},
    )
    assert again.status_code == 409

    estimate = await test_client.post(
        "/api/v1/orders/O1/estimate",
        json={"preparation_minutes": 20, "distance_km": 5},
    )
    assert estimate.status_code == 200
    assert estimate.json()["order"]["tracking"]["estimated_times"]["total"] == 30


@pytest.mark.asyncio
async def test_order_listings(test_client: AsyncClient, placed_order: Order) -> None:
    await test_client.post("/api/v1/orders", json=_order_payload("API2"))

    everything = (await test_client.get("/api/v1/orders")).json()
    restaurant = (await test_client.get("/api/v1/restaurants/rest_api/orders")).json()
    limited = (await test_client.get("/api/v1/orders", params={"limit": 1})).json()

    assert {order["id"] for order in everything} == {"O1", "API2"}
    assert [order["id"] for order in restaurant] == ["API2"]
    assert [order["id"] for order in limited] == ["API2"]
