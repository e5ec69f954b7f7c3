"""Utility modules."""

from order_tracker.utils.logging import TrackingLogger, get_logger, setup_logging

__all__ = ["setup_logging", "get_logger", "TrackingLogger"]
