"""
Repository Layer

One repository per entity, each wrapping a SQLAlchemy session:

    users = UserRepository(db)
    user_id = users.save(User(id=0, name="Frodo", email="f@shire.me"))

Every public method is a single unit of work: it commits when it
succeeds and rolls back before re-raising when the store fails. Absence
is never an exception; lookups return None and update/delete return the
number of rows touched (0 means "no such id").

Deleting a user relies on the activities foreign key (ON DELETE CASCADE),
so the owner and its activities disappear in one statement.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from services.entities import Achievement, Activity, Milestone, User

logger = logging.getLogger(__name__)


# =============================================================================
# ROW MAPPING
# =============================================================================

def _to_user(row: models.User) -> User:
    return User(id=row.id, name=row.name, email=row.email)


def _to_activity(row: models.Activity) -> Activity:
    return Activity(
        id=row.id,
        description=row.description,
        duration=row.duration,
        calories=row.calories,
        started=row.started,
        user_id=row.user_id,
        steps=row.steps,
        distance_km=row.distance_km,
    )


def _to_milestone(row: models.Milestone) -> Milestone:
    return Milestone(
        id=row.id,
        name=row.name,
        description=row.description,
        target_steps=row.target_steps,
    )


def _to_achievement(row: models.Achievement) -> Achievement:
    return Achievement(
        id=row.id,
        name=row.name,
        description=row.description,
        target_distance_km=row.target_distance_km,
        badge_path=row.badge_path,
    )


# =============================================================================
# BASE
# =============================================================================

class _Repository:
    """Shared session handling for the entity repositories."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _unit_of_work(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _insert(self, row) -> int:
        with self._unit_of_work() as db:
            db.add(row)
            db.flush()
            new_id = row.id
        return new_id

    def _update_where(self, model, row_id: int, values: dict) -> int:
        with self._unit_of_work() as db:
            count = (
                db.query(model)
                .filter(model.id == row_id)
                .update(values, synchronize_session=False)
            )
        return count

    def _delete_where(self, *criteria, model) -> int:
        with self._unit_of_work() as db:
            count = db.query(model).filter(*criteria).delete(synchronize_session=False)
        return count


# =============================================================================
# USERS
# =============================================================================

class UserRepository(_Repository):

    def get_all(self) -> List[User]:
        rows = self.db.query(models.User).order_by(models.User.id.asc()).all()
        return [_to_user(row) for row in rows]

    def find_by_id(self, user_id: int) -> Optional[User]:
        row = self.db.query(models.User).filter(models.User.id == user_id).first()
        return _to_user(row) if row else None

    def find_by_email(self, email: str) -> Optional[User]:
        row = (
            self.db.query(models.User)
            .filter(models.User.email == email)
            .order_by(models.User.id.asc())
            .first()
        )
        return _to_user(row) if row else None

    def save(self, user: User) -> int:
        return self._insert(models.User(name=user.name, email=user.email))

    def update(self, user_id: int, user: User) -> int:
        return self._update_where(
            models.User, user_id, {"name": user.name, "email": user.email}
        )

    def delete(self, user_id: int) -> int:
        count = self._delete_where(models.User.id == user_id, model=models.User)
        if count:
            logger.info(f"Deleted user {user_id} and its activities")
        return count


# =============================================================================
# ACTIVITIES
# =============================================================================

class ActivityRepository(_Repository):

    def get_all(self) -> List[Activity]:
        rows = self.db.query(models.Activity).order_by(models.Activity.id.asc()).all()
        return [_to_activity(row) for row in rows]

    def find_by_id(self, activity_id: int) -> Optional[Activity]:
        row = (
            self.db.query(models.Activity)
            .filter(models.Activity.id == activity_id)
            .first()
        )
        return _to_activity(row) if row else None

    find_by_activity_id = find_by_id

    def find_by_user_id(self, user_id: int) -> List[Activity]:
        rows = (
            self.db.query(models.Activity)
            .filter(models.Activity.user_id == user_id)
            .order_by(models.Activity.id.asc())
            .all()
        )
        return [_to_activity(row) for row in rows]

    def total_distance_km_by_user_id(self, user_id: int) -> float:
        total = (
            self.db.query(func.coalesce(func.sum(models.Activity.distance_km), 0.0))
            .filter(models.Activity.user_id == user_id)
            .scalar()
        )
        return float(total or 0.0)

    def save(self, activity: Activity) -> int:
        return self._insert(models.Activity(**self._values(activity)))

    def update(self, activity_id: int, activity: Activity) -> int:
        return self._update_where(models.Activity, activity_id, self._values(activity))

    update_by_activity_id = update

    def delete(self, activity_id: int) -> int:
        return self._delete_where(models.Activity.id == activity_id, model=models.Activity)

    delete_by_activity_id = delete

    def delete_by_user_id(self, user_id: int) -> int:
        return self._delete_where(models.Activity.user_id == user_id, model=models.Activity)

    @staticmethod
    def _values(activity: Activity) -> dict:
        return {
            "description": activity.description,
            "duration": activity.duration,
            "calories": activity.calories,
            "started": activity.started,
            "user_id": activity.user_id,
            "steps": activity.steps,
            "distance_km": activity.distance_km,
        }


# =============================================================================
# MILESTONES
# =============================================================================

class MilestoneRepository(_Repository):

    def get_all(self) -> List[Milestone]:
        rows = self.db.query(models.Milestone).order_by(models.Milestone.id.asc()).all()
        return [_to_milestone(row) for row in rows]

    def find_by_id(self, milestone_id: int) -> Optional[Milestone]:
        row = (
            self.db.query(models.Milestone)
            .filter(models.Milestone.id == milestone_id)
            .first()
        )
        return _to_milestone(row) if row else None

    def find_by_name(self, name: str) -> Optional[Milestone]:
        row = (
            self.db.query(models.Milestone)
            .filter(models.Milestone.name == name)
            .order_by(models.Milestone.id.asc())
            .first()
        )
        return _to_milestone(row) if row else None

    def save(self, milestone: Milestone) -> int:
        return self._insert(models.Milestone(**self._values(milestone)))

    def update(self, milestone_id: int, milestone: Milestone) -> int:
        return self._update_where(models.Milestone, milestone_id, self._values(milestone))

    def delete(self, milestone_id: int) -> int:
        return self._delete_where(models.Milestone.id == milestone_id, model=models.Milestone)

    @staticmethod
    def _values(milestone: Milestone) -> dict:
        return {
            "name": milestone.name,
            "description": milestone.description,
            "target_steps": milestone.target_steps,
        }


# =============================================================================
# ACHIEVEMENTS
# =============================================================================

class AchievementRepository(_Repository):

    def get_all(self) -> List[Achievement]:
        rows = (
            self.db.query(models.Achievement)
            .order_by(models.Achievement.target_distance_km.asc(), models.Achievement.id.asc())
            .all()
        )
        return [_to_achievement(row) for row in rows]

    def find_by_id(self, achievement_id: int) -> Optional[Achievement]:
        row = (
            self.db.query(models.Achievement)
            .filter(models.Achievement.id == achievement_id)
            .first()
        )
        return _to_achievement(row) if row else None

    def find_by_target_distance(self, max_distance_km: float) -> List[Achievement]:
        """Achievements whose threshold is at most ``max_distance_km``, easiest first."""
        rows = (
            self.db.query(models.Achievement)
            .filter(models.Achievement.target_distance_km <= max_distance_km)
            .order_by(models.Achievement.target_distance_km.asc(), models.Achievement.id.asc())
            .all()
        )
        return [_to_achievement(row) for row in rows]

    def save(self, achievement: Achievement) -> int:
        return self._insert(models.Achievement(**self._values(achievement)))

    def update(self, achievement_id: int, achievement: Achievement) -> int:
        return self._update_where(models.Achievement, achievement_id, self._values(achievement))

    def delete(self, achievement_id: int) -> int:
        return self._delete_where(
            models.Achievement.id == achievement_id, model=models.Achievement
        )

    @staticmethod
    def _values(achievement: Achievement) -> dict:
        return {
            "name": achievement.name,
            "description": achievement.description,
            "target_distance_km": achievement.target_distance_km,
            "badge_path": achievement.badge_path,
        }
