"""
Achievement API Endpoints

Distance badges. Creating and updating take multipart form data
(name, description, targetDistanceKm, badge file) because the badge icon
is uploaded alongside the fields. Mutations require the admin role.
"""
import math
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.orm import Session

from core.auth import Operation, require_role_for
from core.database import get_db
from core.exceptions import NotFoundError, ValidationError
from models import ACHIEVEMENT_DESCRIPTION_MAX_LENGTH, ACHIEVEMENT_NAME_MAX_LENGTH
from schemas import AchievementResponse
from services.achievement_resolution import resolve_achievements_for_user
from services.badge_storage import discard_badge_file, store_badge_file
from services.entities import Achievement
from services.repositories import AchievementRepository

router = APIRouter(prefix="/api", tags=["achievements"])

MISSING_FIELDS_DETAIL = "Missing required achievement fields."


def _parse_distance(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _check_lengths(name: Optional[str], description: Optional[str]) -> None:
    """Reject text that would not fit the achievements columns (before any file is written)."""
    if name is not None and len(name) > ACHIEVEMENT_NAME_MAX_LENGTH:
        raise ValidationError(
            f"name must be at most {ACHIEVEMENT_NAME_MAX_LENGTH} characters.", field="name"
        )
    if description is not None and len(description) > ACHIEVEMENT_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"description must be at most {ACHIEVEMENT_DESCRIPTION_MAX_LENGTH} characters.",
            field="description",
        )


@router.get("/achievements", response_model=List[AchievementResponse])
def get_all_achievements(response: Response, db: Session = Depends(get_db)):
    """Return all achievements, easiest first (404 with an empty list when none)."""
    achievements = AchievementRepository(db).get_all()
    if not achievements:
        response.status_code = status.HTTP_404_NOT_FOUND
    return achievements


@router.get("/achievements/{achievement_id}", response_model=AchievementResponse)
def get_achievement_by_id(achievement_id: int, db: Session = Depends(get_db)):
    achievement = AchievementRepository(db).find_by_id(achievement_id)
    if achievement is None:
        raise NotFoundError("Achievement", achievement_id)
    return achievement


@router.get("/users/{user_id}/achievements", response_model=List[AchievementResponse])
def get_achievements_by_user_id(response: Response, user_id: int, db: Session = Depends(get_db)):
    """
    Achievements earned by a user, lowest threshold first.

    404 when the user does not exist; 404 with an empty list when the
    user exists but has not earned anything yet.
    """
    resolution = resolve_achievements_for_user(db, user_id)
    if not resolution.user_found:
        raise NotFoundError("User", user_id)
    if not resolution.achievements:
        response.status_code = status.HTTP_404_NOT_FOUND
    return resolution.achievements


@router.post(
    "/achievements",
    response_model=AchievementResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role_for(Operation.CREATE_ACHIEVEMENT))],
)
async def add_achievement(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    target_distance_km: Optional[str] = Form(None, alias="targetDistanceKm"),
    badge: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    """Create an achievement with its badge icon."""
    target = _parse_distance(target_distance_km)
    if not name or not name.strip() or not description or not description.strip() \
            or target is None or badge is None:
        raise ValidationError(MISSING_FIELDS_DETAIL)
    if target < 0:
        raise ValidationError("targetDistanceKm must not be negative.", field="targetDistanceKm")
    _check_lengths(name, description)

    badge_path = await store_badge_file(badge)
    achievement = Achievement(
        id=0,
        name=name,
        description=description,
        target_distance_km=target,
        badge_path=badge_path,
    )
    try:
        achievement.id = AchievementRepository(db).save(achievement)
    except Exception:
        discard_badge_file(badge_path)
        raise
    return achievement


@router.patch(
    "/achievements/{achievement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.UPDATE_ACHIEVEMENT))],
)
async def update_achievement(
    achievement_id: int,
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    target_distance_km: Optional[str] = Form(None, alias="targetDistanceKm"),
    badge: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    """
    Partially update an achievement.

    Omitted (or unparseable) fields keep their current value; a new badge
    file replaces the stored path.
    """
    repository = AchievementRepository(db)
    current = repository.find_by_id(achievement_id)
    if current is None:
        raise NotFoundError("Achievement", achievement_id)

    target = _parse_distance(target_distance_km)
    if target is not None and target < 0:
        raise ValidationError("targetDistanceKm must not be negative.", field="targetDistanceKm")
    _check_lengths(name, description)

    new_badge_path = await store_badge_file(badge) if badge is not None else None
    updated = replace(
        current,
        name=name if name is not None else current.name,
        description=description if description is not None else current.description,
        target_distance_km=target if target is not None else current.target_distance_km,
        badge_path=new_badge_path or current.badge_path,
    )
    try:
        count = repository.update(achievement_id, updated)
    except Exception:
        if new_badge_path:
            discard_badge_file(new_badge_path)
        raise
    if count == 0:
        if new_badge_path:
            discard_badge_file(new_badge_path)
        raise NotFoundError("Achievement", achievement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/achievements/{achievement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.DELETE_ACHIEVEMENT))],
)
def delete_achievement(achievement_id: int, db: Session = Depends(get_db)):
    if AchievementRepository(db).delete(achievement_id) == 0:
        raise NotFoundError("Achievement", achievement_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
