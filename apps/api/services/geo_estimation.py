"""
Geo Estimation Service

Turns two map points into the numbers stored on an activity:

    distance_km = haversine(start, end)              (Earth radius 6371 km)
    steps       = round(distance_km * 1312)
    duration    = steps / 100.0                      (minutes)
    calories    = round(steps * 0.04)

Rounding is half-up (x.5 goes to the next integer) rather than Python's
round-half-to-even, so 0.5 km always yields the same step count.
"""
import math

EARTH_RADIUS_KM = 6371.0
STEPS_PER_KM = 1312.0
STEPS_PER_MINUTE = 100.0
CALORIES_PER_STEP = 0.04
STORED_DISTANCE_DECIMALS = 2


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties going towards +infinity."""
    return int(math.floor(value + 0.5))


def haversine_distance_km(
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
) -> float:
    """Great-circle distance in kilometers between two points in decimal degrees."""
    lat_distance = math.radians(end_lat - start_lat)
    lng_distance = math.radians(end_lng - start_lng)
    a = (
        math.sin(lat_distance / 2) ** 2
        + math.cos(math.radians(start_lat))
        * math.cos(math.radians(end_lat))
        * math.sin(lng_distance / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def round_distance_km(distance_km: float) -> float:
    """Distance as stored on an activity (2 decimal places)."""
    scale = 10 ** STORED_DISTANCE_DECIMALS
    return round_half_up(distance_km * scale) / scale


def estimate_steps_from_distance_km(distance_km: float) -> int:
    return round_half_up(distance_km * STEPS_PER_KM)


def estimate_duration_minutes(steps: int) -> float:
    return steps / STEPS_PER_MINUTE


def estimate_calories(steps: int) -> int:
    return round_half_up(steps * CALORIES_PER_STEP)
