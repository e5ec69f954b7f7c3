"""WebSocket handlers streaming order changes to clients."""

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from order_tracker.models.order import Order
from order_tracker.services.observers import OrderObserverHub
from order_tracker.state.manager import get_state_manager
from order_tracker.state.orders import OrderRepository
from order_tracker.utils.logging import get_logger

logger = get_logger(__name__)


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "ping", "refresh"
    metadata: dict[str, Any] = {}


class ConnectionManager:
    """Manages WebSocket connections per order."""

    def __init__(self) -> None:
        self.active_connections: dict[str, list[WebSocket]] = {}

    async def connect(self, order_id: str, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self.active_connections.setdefault(order_id, []).append(websocket)
        logger.info("websocket_connected", order_id=order_id)

    def disconnect(self, order_id: str, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        connections = self.active_connections.get(order_id, [])
        if websocket in connections:
            connections.remove(websocket)
            logger.info("websocket_disconnected", order_id=order_id)
        if not connections:
            self.active_connections.pop(order_id, None)


# Global connection manager
manager = ConnectionManager()

# Global observer hub, started by the application lifespan
_observer_hub: OrderObserverHub | None = None


async def get_observer_hub() -> OrderObserverHub:
    """Get the global observer hub instance."""
    global _observer_hub
    if _observer_hub is None:
        state_manager = await get_state_manager()
        _observer_hub = OrderObserverHub(OrderRepository(state_manager), state_manager)
    return _observer_hub


def _snapshot(order: Order) -> dict[str, Any]:
    return {"type": "order", "order": order.model_dump(mode="json")}


async def handle_order_stream(
    websocket: WebSocket,
    order_id: str,
    hub: OrderObserverHub,
) -> None:
    """
    Stream an order to a WebSocket client until it disconnects.

    Args:
        websocket: WebSocket connection
        order_id: Order to observe
        hub: Observer hub delivering change notices
    """
    order = await hub.repository.get_order(order_id)

    if not order:
        await websocket.close(code=1008, reason="Order not found")
        return

    await manager.connect(order_id, websocket)

    async def _push(changed: Order) -> None:
        await websocket.send_json(_snapshot(changed))

    # The first push is the current snapshot
    unsubscribe = await hub.subscribe_to_order(order_id, _push)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                ws_message = WebSocketMessage(**json.loads(data))
            except (json.JSONDecodeError, ValidationError) as e:
                await websocket.send_json(
                    {
                        "type": "error",
                        "message": "Invalid message format",
                        "details": str(e),
                    }
                )
                continue

            if ws_message.type == "ping":
                await websocket.send_json({"type": "pong"})

            elif ws_message.type == "refresh":
                current = await hub.repository.get_order(order_id)
                if current:
                    await websocket.send_json(_snapshot(current))

    except WebSocketDisconnect:
        logger.info("websocket_client_disconnected", order_id=order_id)

    except Exception as e:
        logger.error("websocket_error", order_id=order_id, error=str(e))

    finally:
        unsubscribe()
        manager.disconnect(order_id, websocket)
