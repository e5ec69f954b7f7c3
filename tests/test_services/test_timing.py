"""Tests for delivery time and distance calculators."""

from datetime import datetime, timedelta, timezone

import pytest

from order_tracker.models.tracking import OrderTracking, TrackingTimestamps
from order_tracker.services.timing import (
    calculate_actual_times,
    calculate_distance_km,
    calculate_estimated_delivery_time,
    estimate_travel_minutes,
    refresh_actual_times,
)

PLACED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _tracking(**milestones: datetime) -> OrderTracking:
    return OrderTracking(
        order_id="O1",
        timestamps=TrackingTimestamps(order_placed=PLACED, **milestones),
    )


def test_estimated_delivery_time() -> None:
    """Preparation plus two minutes per km."""
    assert calculate_estimated_delivery_time(20, 5, 1.0) == 30
    assert calculate_estimated_delivery_time(20, 5) == 30


def test_estimated_delivery_time_traffic_factor() -> None:
    """Traffic scales the whole estimate before rounding."""
    assert calculate_estimated_delivery_time(15, 2.5, 1.5) == 30
    assert calculate_estimated_delivery_time(10, 1.2, 1.3) == 16


def test_actual_times_total_only() -> None:
    """Only durations with both endpoints are reported."""
    tracking = _tracking(delivered=PLACED + timedelta(minutes=25))

    assert calculate_actual_times(tracking) == {"total": 25}


def test_actual_times_all_durations() -> None:
    """Preparation, delivery and total from a completed order."""
    tracking = _tracking(
        confirmed=PLACED + timedelta(minutes=2),
        ready=PLACED + timedelta(minutes=20),
        picked_up=PLACED + timedelta(minutes=24),
        delivered=PLACED + timedelta(minutes=41),
    )

    assert calculate_actual_times(tracking) == {
        "preparation": 18,
        "delivery": 17,
        "total": 41,
    }


def test_actual_times_empty_before_delivery() -> None:
    """A fresh order has no measured durations."""
    tracking = _tracking(confirmed=PLACED + timedelta(minutes=1))

    assert calculate_actual_times(tracking) == {}


def test_refresh_actual_times_stores_on_tracking() -> None:
    tracking = _tracking(delivered=PLACED + timedelta(minutes=30))

    refresh_actual_times(tracking)

    assert tracking.actual_times.total == 30
    assert tracking.actual_times.preparation is None
    assert tracking.actual_times.delivery is None


def test_distance_to_same_point_is_zero() -> None:
    assert calculate_distance_km(41.0082, 28.9784, 41.0082, 28.9784) == 0


def test_distance_one_degree_latitude() -> None:
    """One degree of latitude is roughly 111 km."""
    distance = calculate_distance_km(41.0, 28.9784, 42.0, 28.9784)

    assert distance == pytest.approx(111, rel=0.01)


@pytest.mark.parametrize(
    "distance_km,expected",
    [
        (0, 0),
        (5, 10),
        (15, 30),
        (2.6, 5),
    ],
)
def test_travel_minutes_at_urban_speed(distance_km: float, expected: int) -> None:
    """Thirty km/h means two minutes per km."""
    assert estimate_travel_minutes(distance_km) == expected
