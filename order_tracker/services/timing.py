"""Delivery time and distance calculators."""

import math

from order_tracker.models.tracking import ActualTimes, OrderTracking
from order_tracker.utils.clock import minutes_between

EARTH_RADIUS_KM = 6371
MINUTES_PER_KM = 2
URBAN_SPEED_KMH = 30


def calculate_estimated_delivery_time(
    preparation_minutes: float,
    distance_km: float,
    traffic_factor: float = 1.0,
    minutes_per_km: float = MINUTES_PER_KM,
) -> int:
    """Estimated minutes from confirmation to the customer's door."""
    base_delivery_time = distance_km * minutes_per_km
    return round((preparation_minutes + base_delivery_time) * traffic_factor)


def calculate_actual_times(tracking: OrderTracking) -> dict[str, int]:
    """Measured durations in minutes.

    Returns:
        ``preparation`` (confirmed to ready), ``delivery`` (picked up to
        delivered) and ``total`` (placed to delivered). A key is present only
        when both of its milestones have been recorded.
    """
    timestamps = tracking.timestamps
    actual_times: dict[str, int] = {}

    if timestamps.confirmed and timestamps.ready:
        actual_times["preparation"] = minutes_between(timestamps.confirmed, timestamps.ready)

    if timestamps.picked_up and timestamps.delivered:
        actual_times["delivery"] = minutes_between(timestamps.picked_up, timestamps.delivered)

    if timestamps.order_placed and timestamps.delivered:
        actual_times["total"] = minutes_between(timestamps.order_placed, timestamps.delivered)

    return actual_times


def refresh_actual_times(tracking: OrderTracking) -> None:
    """Store the measured durations on the tracking record."""
    tracking.actual_times = ActualTimes(**calculate_actual_times(tracking))


def calculate_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in km (haversine)."""
    lat1_rad, lng1_rad = math.radians(lat1), math.radians(lng1)
    lat2_rad, lng2_rad = math.radians(lat2), math.radians(lng2)

    dlat = lat2_rad - lat1_rad
    dlng = lng2_rad - lng1_rad

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def estimate_travel_minutes(distance_km: float, speed_kmh: float = URBAN_SPEED_KMH) -> int:
    """Minutes to cover a distance at constant urban speed."""
    return round(distance_km / speed_kmh * 60)
