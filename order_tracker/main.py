"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from order_tracker.config import get_settings
from order_tracker.services.notifications import NotificationDispatcher, build_channels
from order_tracker.services.tracking import OrderTrackingService
from order_tracker.state.manager import get_state_manager
from order_tracker.state.orders import OrderRepository
from order_tracker.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")

    state_manager = await get_state_manager()
    logger.info("state_manager_initialized")

    hub = await get_observer_hub()
    await hub.start()

    http_client = httpx.AsyncClient(timeout=settings.notification_timeout)
    dispatcher = NotificationDispatcher(
        state_manager,
        OrderTrackingService(OrderRepository(state_manager)),
        build_channels(state_manager, http_client),
    )
    dispatcher_task = asyncio.create_task(dispatcher.run())

    yield

    # Shutdown
    logger.info("application_shutting_down")
    dispatcher.stop()
    await dispatcher_task
    await http_client.aclose()
    await hub.stop()
    await state_manager.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Order Lifecycle Tracker",
    description="Order status, driver and delivery tracking for the food marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "order-tracker"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Order Lifecycle Tracker API",
        "docs": "/docs",
        "health": "/health",
    }


# Import and include routers
from order_tracker.api.routes import router
from order_tracker.api.websocket import get_observer_hub, handle_order_stream

app.include_router(router, prefix="/api/v1", tags=["api"])


# WebSocket endpoint
@app.websocket("/ws/orders/{order_id}")
async def websocket_endpoint(websocket: WebSocket, order_id: str) -> None:
    """WebSocket endpoint for live order tracking."""
    hub = await get_observer_hub()
    await handle_order_stream(websocket, order_id, hub)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "order_tracker.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
