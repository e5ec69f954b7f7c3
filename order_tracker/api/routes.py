"""API routes for order tracking."""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from order_tracker.exceptions import OrderExistsError
from order_tracker.models.driver import Driver
from order_tracker.models.order import (
    CustomerRef,
    DeliveryAddress,
    Order,
    OrderItem,
    PaymentMethod,
    RestaurantRef,
)
from order_tracker.models.status import OrderStatus, UpdatedBy
from order_tracker.models.tracking import InteractionType
from order_tracker.services import timing
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import get_state_manager
from order_tracker.state.orders import OrderRepository
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models


class CreateOrderRequest(BaseModel):
    """Request to place an order."""

    id: str | None = None
    customer: CustomerRef
    restaurant: RestaurantRef
    items: list[OrderItem] = Field(min_length=1)
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    delivery_address: DeliveryAddress | None = None
    special_instructions: str | None = None
    delivery_instructions: str | None = None


class StatusUpdateRequest(BaseModel):
    """Request to move an order to a new status."""

    status: OrderStatus
    updated_by: UpdatedBy
    description: str | None = None
    metadata: dict[str, Any] | None = None


class LocationUpdateRequest(BaseModel):
    """Courier position report."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    status: OrderStatus
    description: str | None = None


class InteractionRequest(BaseModel):
    """Customer request against an order."""

    type: InteractionType
    notes: str | None = None


class ResolveInteractionRequest(BaseModel):
    """Staff decision on a customer request."""

    approved: bool


class EstimateRequest(BaseModel):
    """Inputs for the delivery time estimate."""

    preparation_minutes: float = Field(ge=0)
    distance_km: float = Field(ge=0)
    traffic_factor: float = Field(default=1.0, gt=0)


class OperationResponse(BaseModel):
    """Outcome of a tracking operation."""

    success: bool
    order: Order


# Dependencies


async def get_order_repository() -> OrderRepository:
    """Get order repository instance."""
    state_manager = await get_state_manager()
    return OrderRepository(state_manager)


async def get_tracking_service(
    repository: OrderRepository = Depends(get_order_repository),
) -> OrderTrackingService:
    """Get tracking service instance."""
    return OrderTrackingService(repository)


async def _load_order(repository: OrderRepository, order_id: str) -> Order:
    order = await repository.get_order(order_id)

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )

    return order


async def _finish(
    success: bool,
    repository: OrderRepository,
    order_id: str,
    detail: str,
) -> OperationResponse:
    if not success:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    return OperationResponse(success=True, order=await _load_order(repository, order_id))


# Routes


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    repository: OrderRepository = Depends(get_order_repository),
) -> Order:
    """Place an order and start tracking it."""
    fields = request.model_dump(exclude_none=True, exclude={"items"})
    order = Order(**fields)
    for item in request.items:
        order.add_item(item)

    try:
        await repository.create_order(order)
    except OrderExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order already exists",
        )

    return order


@router.get("/orders", response_model=list[Order])
async def list_orders(
    limit: int | None = None,
    repository: OrderRepository = Depends(get_order_repository),
) -> list[Order]:
    """All orders, newest first."""
    return await repository.list_all_orders(limit=limit)


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(
    order_id: str,
    repository: OrderRepository = Depends(get_order_repository),
) -> Order:
    """Get order details."""
    return await _load_order(repository, order_id)


@router.get("/orders/{order_id}/tracking")
async def get_order_tracking(
    order_id: str,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> dict[str, Any]:
    """Get tracking state with measured durations and the driver's ETA."""
    order = await _load_order(repository, order_id)
    tracking = order.ensure_tracking()

    return {
        "order_id": order.id,
        "tracking": tracking.model_dump(mode="json"),
        "actual_times": timing.calculate_actual_times(tracking),
        "driver_eta_minutes": await service.get_driver_eta(order_id),
    }


@router.post("/orders/{order_id}/status", response_model=OperationResponse)
async def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Move an order to a new status."""
    await _load_order(repository, order_id)

    success = await service.update_order_status(
        order_id,
        request.status,
        request.updated_by,
        description=request.description,
        metadata=request.metadata,
    )

    return await _finish(success, repository, order_id, "Status update rejected")


@router.post("/orders/{order_id}/driver", response_model=OperationResponse)
async def assign_driver(
    order_id: str,
    driver: Driver,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Assign a driver to an order."""
    await _load_order(repository, order_id)
    success = await service.assign_driver(order_id, driver)
    return await _finish(success, repository, order_id, "Driver assignment rejected")


@router.post("/orders/{order_id}/location", response_model=OperationResponse)
async def update_location(
    order_id: str,
    request: LocationUpdateRequest,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Record the courier's position."""
    await _load_order(repository, order_id)

    success = await service.update_location(
        order_id,
        request.lat,
        request.lng,
        request.status,
        description=request.description,
    )

    return await _finish(success, repository, order_id, "Location update failed")


@router.post("/orders/{order_id}/interactions", response_model=OperationResponse)
async def add_customer_interaction(
    order_id: str,
    request: InteractionRequest,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Log a customer request."""
    await _load_order(repository, order_id)
    success = await service.add_customer_interaction(order_id, request.type, request.notes)
    return await _finish(success, repository, order_id, "Interaction could not be recorded")


@router.post(
    "/orders/{order_id}/interactions/{index}/resolve",
    response_model=OperationResponse,
)
async def resolve_customer_interaction(
    order_id: str,
    index: int,
    request: ResolveInteractionRequest,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Approve or reject a pending customer request."""
    await _load_order(repository, order_id)
    success = await service.resolve_customer_interaction(order_id, index, request.approved)
    return await _finish(success, repository, order_id, "Interaction could not be resolved")


@router.post("/orders/{order_id}/estimate", response_model=OperationResponse)
async def set_estimated_times(
    order_id: str,
    request: EstimateRequest,
    repository: OrderRepository = Depends(get_order_repository),
    service: OrderTrackingService = Depends(get_tracking_service),
) -> OperationResponse:
    """Store the planned delivery durations."""
    await _load_order(repository, order_id)

    success = await service.set_estimated_times(
        order_id,
        request.preparation_minutes,
        request.distance_km,
        request.traffic_factor,
    )

    return await _finish(success, repository, order_id, "Estimate could not be stored")


@router.get("/restaurants/{restaurant_id}/orders", response_model=list[Order])
async def list_restaurant_orders(
    restaurant_id: str,
    limit: int | None = None,
    repository: OrderRepository = Depends(get_order_repository),
) -> list[Order]:
    """Orders of one restaurant, newest first."""
    return await repository.list_restaurant_orders(restaurant_id, limit=limit)
