"""Geographic utility functions."""

import math
import time
from typing import Optional

from .config import CONFIG
from .models import Coordinate

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

COMPASS_NAMES = {
    "N": "north", "NE": "northeast", "E": "east", "SE": "southeast",
    "S": "south", "SW": "southwest", "W": "west", "NW": "northwest",
}


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    R = CONFIG["earth_radius"]

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def distance(a: Coordinate, b: Coordinate) -> float:
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def bearing(a: Coordinate, b: Coordinate) -> float:
    """Initial bearing from a to b. Meaningless when a == b."""
    return bearing_between(a.lat, a.lng, b.lat, b.lng)


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to one of the eight compass points (N, NE, ...)"""
    index = round(bearing / 45) % 8
    return COMPASS_POINTS[index]


def turn_hint(from_bearing: float, to_bearing: float,
              threshold: float = CONFIG["turn_threshold"]) -> Optional[str]:
    """Return "left" or "right" when the heading changes by more than threshold.

    The difference is normalised to (-180, 180] so a turn across north
    (e.g. 350 -> 20) is a 30 degree right turn, not a 330 degree left one.
    """
    diff = (to_bearing - from_bearing + 540) % 360 - 180
    if diff == -180:
        diff = 180
    if abs(diff) <= threshold:
        return None
    return "right" if diff > 0 else "left"


def interpolate_line(start: Coordinate, end: Coordinate, segments: int) -> list[Coordinate]:
    """Evenly spaced straight-line points from start to end, both included"""
    segments = max(1, segments)
    return [
        Coordinate(
            lat=start.lat + (end.lat - start.lat) * i / segments,
            lng=start.lng + (end.lng - start.lng) * i / segments,
        )
        for i in range(segments + 1)
    ]


def retry_with_backoff(func, max_time: float = 30.0, initial_delay: float = 1.0,
                       max_delay: float = 8.0, description: str = "operation",
                       sleep=time.sleep):
    """Retry a function with exponential backoff.

    Args:
        func: Function that returns a truthy value on success, falsy on failure
        max_time: Maximum total time to retry (seconds)
        initial_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        description: Description for logging
        sleep: Sleep function, replaceable in tests

    Returns:
        The result of func() on success, or None if all retries failed
    """
    start_time = time.time()
    delay = initial_delay
    attempt = 1

    while True:
        result = func()
        if result:
            return result

        elapsed = time.time() - start_time
        if elapsed >= max_time:
            print(f"Failed to complete {description} after {elapsed:.1f}s ({attempt} attempts)")
            return None

        remaining = max_time - elapsed
        sleep_time = min(delay, remaining, max_delay)
        if sleep_time > 0:
            print(f"Retrying {description} in {sleep_time:.1f}s (attempt {attempt})...")
            sleep(sleep_time)

        delay = min(delay * 2, max_delay)
        attempt += 1
