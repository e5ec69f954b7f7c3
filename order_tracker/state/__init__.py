"""State management modules."""

from order_tracker.state.manager import StateManager, StateWrite
from order_tracker.state.orders import OrderRepository, OrderUpdate
from order_tracker.state.workflow import OrderTransitions

__all__ = ["StateManager", "StateWrite", "OrderRepository", "OrderUpdate", "OrderTransitions"]
