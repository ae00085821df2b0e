"""
Map Activity Service

Synthesizes an activity from two map points: distance, steps, duration,
calories and a "From <start> to <end>" description built from reverse
geocoded place names. Geocoding problems only degrade the description;
they never fail the request.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy.orm import Session

from core.logging import log_fields
from models import ACTIVITY_DESCRIPTION_MAX_LENGTH
from services.entities import Activity, ActivityMapRequest
from services.geo_estimation import (
    estimate_calories,
    estimate_duration_minutes,
    estimate_steps_from_distance_km,
    haversine_distance_km,
    round_distance_km,
)
from services.repositories import ActivityRepository, UserRepository
from services.reverse_geocoding import PlaceNameLookup

logger = logging.getLogger(__name__)


def start_label(lat: float, lng: float) -> str:
    return f"Start ({lat}, {lng})"


def end_label(lat: float, lng: float) -> str:
    return f"End ({lat}, {lng})"


def _place_name(geocoder: PlaceNameLookup, lat: float, lng: float, fallback: str) -> str:
    try:
        name = geocoder.lookup(lat, lng)
    except Exception as e:
        # A raising lookup counts as a miss.
        logger.warning(f"Reverse geocode raised for {lat},{lng}: {e}")
        name = None
    return name if name else fallback


def describe_journey(start_name: str, end_name: str) -> str:
    description = f"From {start_name} to {end_name}"
    if len(description) > ACTIVITY_DESCRIPTION_MAX_LENGTH:
        description = description[: ACTIVITY_DESCRIPTION_MAX_LENGTH - 3] + "..."
    return description


def build_activity_from_map(
    request: ActivityMapRequest,
    user_id: int,
    geocoder: PlaceNameLookup,
    now: Optional[datetime] = None,
) -> Activity:
    """
    Build (but do not persist) the activity for a map journey.

    Steps are estimated from the unrounded distance; the stored
    distance is rounded to 2 decimal places.
    """
    raw_distance_km = haversine_distance_km(
        request.start_lat,
        request.start_lng,
        request.end_lat,
        request.end_lng,
    )
    steps = estimate_steps_from_distance_km(raw_distance_km)

    start_name = _place_name(
        geocoder, request.start_lat, request.start_lng,
        start_label(request.start_lat, request.start_lng),
    )
    end_name = _place_name(
        geocoder, request.end_lat, request.end_lng,
        end_label(request.end_lat, request.end_lng),
    )

    return Activity(
        id=0,
        description=describe_journey(start_name, end_name),
        duration=estimate_duration_minutes(steps),
        calories=estimate_calories(steps),
        started=now or datetime.now(timezone.utc),
        user_id=user_id,
        steps=steps,
        distance_km=round_distance_km(raw_distance_km),
    )


def create_activity_from_map(
    db: Session,
    user_id: int,
    request: ActivityMapRequest,
    geocoder: PlaceNameLookup,
) -> Optional[Activity]:
    """
    Persist a map activity for ``user_id``.

    Returns None when the user does not exist; nothing is written then.
    """
    if UserRepository(db).find_by_id(user_id) is None:
        return None

    activity = build_activity_from_map(request, user_id, geocoder)
    activity.id = ActivityRepository(db).save(activity)
    logger.info(
        f"Created map activity {activity.id} for user {user_id}",
        extra=log_fields(
            activity_id=activity.id,
            user_id=user_id,
            distance_km=activity.distance_km,
            steps=activity.steps,
        ),
    )
    return activity
