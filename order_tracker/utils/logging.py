"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from order_tracker.config import get_settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Configure standard library logging
    log_level = getattr(logging, settings.log_level)

    if settings.log_format == "json":
        # JSON logging for production
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
        handler.setFormatter(formatter)
    else:
        # Human-readable logging for development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class TrackingLogger:
    """Specialized logger for order tracking operations."""

    def __init__(self, component: str):
        self.component = component
        self.logger = get_logger(component)

    def log_transition(
        self,
        order_id: str,
        from_status: str,
        to_status: str,
        updated_by: str,
        **kwargs: Any,
    ) -> None:
        """Log an order status transition."""
        self.logger.info(
            "status_transition",
            component=self.component,
            order_id=order_id,
            from_status=from_status,
            to_status=to_status,
            updated_by=updated_by,
            **kwargs,
        )

    def log_operation(
        self,
        operation: str,
        order_id: str,
        duration_ms: float | None = None,
        success: bool = True,
        **kwargs: Any,
    ) -> None:
        """Log a tracking operation with structured data."""
        log_data = {
            "component": self.component,
            "order_id": order_id,
            "operation": operation,
            "success": success,
        }

        if duration_ms is not None:
            log_data["duration_ms"] = duration_ms

        log_data.update(kwargs)
        self.logger.info("tracking_operation", **log_data)

    def log_error(
        self,
        operation: str,
        order_id: str,
        error: str,
        **kwargs: Any,
    ) -> None:
        """Log a failed operation."""
        self.logger.error(
            f"{operation}_failed",
            component=self.component,
            order_id=order_id,
            error=error,
            **kwargs,
        )
