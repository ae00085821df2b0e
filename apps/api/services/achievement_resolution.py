"""
Achievement Resolution

An achievement is earned once the sum of a user's logged distance is at
least its target (a total exactly on the threshold counts).
"""
from dataclasses import dataclass, field
from typing import List
import logging

from sqlalchemy.orm import Session

from services.entities import Achievement
from services.repositories import AchievementRepository, ActivityRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass
class AchievementResolution:
    """
    Outcome of resolving a user's achievements.

    ``user_found=False`` means the user does not exist. A found user with
    an empty ``achievements`` list simply has not earned anything yet.
    """

    user_found: bool
    total_distance_km: float = 0.0
    achievements: List[Achievement] = field(default_factory=list)


def resolve_achievements_for_user(db: Session, user_id: int) -> AchievementResolution:
    if UserRepository(db).find_by_id(user_id) is None:
        return AchievementResolution(user_found=False)

    total_distance_km = ActivityRepository(db).total_distance_km_by_user_id(user_id)
    earned = AchievementRepository(db).find_by_target_distance(total_distance_km)
    logger.debug(
        f"User {user_id} has {total_distance_km} km logged, {len(earned)} achievements earned"
    )
    return AchievementResolution(
        user_found=True,
        total_distance_km=total_distance_km,
        achievements=earned,
    )
