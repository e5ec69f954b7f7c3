"""Order lifecycle tracking for the food delivery marketplace."""

__version__ = "0.1.0"
