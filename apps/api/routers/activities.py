"""
Activity API Endpoints

Manual activity CRUD plus the map endpoint that synthesizes an activity
from two coordinates. Every mutation requires the admin role; an
activity can only be created for an existing user.
"""
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import List

from core.auth import Operation, require_role_for
from core.database import get_db
from core.exceptions import NotFoundError
from schemas import ActivityCreate, ActivityMapCreate, ActivityResponse
from services.entities import Activity, ActivityMapRequest
from services.map_activity import create_activity_from_map
from services.repositories import ActivityRepository, UserRepository
from services.reverse_geocoding import PlaceNameLookup

router = APIRouter(prefix="/api", tags=["activities"])


def get_reverse_geocoder(request: Request) -> PlaceNameLookup:
    """The geocoder built at startup and owned by the application."""
    return request.app.state.reverse_geocoder


def _to_activity(activity_id: int, body: ActivityCreate) -> Activity:
    return Activity(
        id=activity_id,
        description=body.description,
        duration=body.duration,
        calories=body.calories,
        started=body.started,
        user_id=body.user_id,
        steps=body.steps,
        distance_km=body.distance_km,
    )


@router.get("/activities", response_model=List[ActivityResponse])
def get_all_activities(response: Response, db: Session = Depends(get_db)):
    """Return all activities (404 with an empty list when there are none)."""
    activities = ActivityRepository(db).get_all()
    if not activities:
        response.status_code = status.HTTP_404_NOT_FOUND
    return activities


@router.get("/activities/{activity_id}", response_model=ActivityResponse)
def get_activity_by_activity_id(activity_id: int, db: Session = Depends(get_db)):
    activity = ActivityRepository(db).find_by_activity_id(activity_id)
    if activity is None:
        raise NotFoundError("Activity", activity_id)
    return activity


@router.post(
    "/activities",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role_for(Operation.CREATE_ACTIVITY))],
)
def add_activity(body: ActivityCreate, db: Session = Depends(get_db)):
    """Create an activity for an existing user and return it with its id."""
    if UserRepository(db).find_by_id(body.user_id) is None:
        raise NotFoundError("User", body.user_id)
    activity = _to_activity(0, body)
    activity.id = ActivityRepository(db).save(activity)
    return activity


@router.patch(
    "/activities/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.UPDATE_ACTIVITY))],
)
def update_activity(activity_id: int, body: ActivityCreate, db: Session = Depends(get_db)):
    if UserRepository(db).find_by_id(body.user_id) is None:
        raise NotFoundError("User", body.user_id)
    activity = _to_activity(activity_id, body)
    if ActivityRepository(db).update_by_activity_id(activity_id, activity) == 0:
        raise NotFoundError("Activity", activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/activities/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.DELETE_ACTIVITY))],
)
def delete_activity_by_activity_id(activity_id: int, db: Session = Depends(get_db)):
    if ActivityRepository(db).delete_by_activity_id(activity_id) == 0:
        raise NotFoundError("Activity", activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{user_id}/activities", response_model=List[ActivityResponse])
def get_activities_by_user_id(user_id: int, db: Session = Depends(get_db)):
    if UserRepository(db).find_by_id(user_id) is None:
        raise NotFoundError("User", user_id)
    activities = ActivityRepository(db).find_by_user_id(user_id)
    if not activities:
        raise NotFoundError("Activities for user", user_id)
    return activities


@router.delete(
    "/users/{user_id}/activities",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.DELETE_USER_ACTIVITIES))],
)
def delete_activities_by_user_id(user_id: int, db: Session = Depends(get_db)):
    if ActivityRepository(db).delete_by_user_id(user_id) == 0:
        raise NotFoundError("Activities for user", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/users/{user_id}/activities/map",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role_for(Operation.CREATE_MAP_ACTIVITY))],
)
def add_activity_from_map(
    user_id: int,
    body: ActivityMapCreate,
    db: Session = Depends(get_db),
    geocoder: PlaceNameLookup = Depends(get_reverse_geocoder),
):
    """
    Create an activity from two map points.

    Distance, steps, duration and calories are estimated from the points;
    the description names both ends via reverse geocoding, falling back
    to the raw coordinates when the lookup fails.
    """
    request = ActivityMapRequest(
        start_lat=body.start_lat,
        start_lng=body.start_lng,
        end_lat=body.end_lat,
        end_lng=body.end_lng,
    )
    activity = create_activity_from_map(db, user_id, request, geocoder)
    if activity is None:
        raise NotFoundError("User", user_id)
    return activity
