from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from core.database import Base

ACTIVITY_DESCRIPTION_MAX_LENGTH = 100
MILESTONE_NAME_MAX_LENGTH = 20
MILESTONE_DESCRIPTION_MAX_LENGTH = 100
ACHIEVEMENT_NAME_MAX_LENGTH = 100
ACHIEVEMENT_DESCRIPTION_MAX_LENGTH = 255
BADGE_PATH_MAX_LENGTH = 255


class User(Base):
    """A registered companion. Email is a lookup key, not unique."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)

    # --- RELATIONSHIPS ---
    # passive_deletes leaves the cascade to the database's ON DELETE CASCADE,
    # so deleting a user removes its activities in the same statement.
    activities = relationship(
        "Activity",
        back_populates="user",
        lazy="dynamic",
        passive_deletes=True,
    )


class Activity(Base):
    """A single journey logged by a user."""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    description = Column(String(ACTIVITY_DESCRIPTION_MAX_LENGTH), nullable=False)
    duration = Column(Float, nullable=False)  # minutes
    calories = Column(Integer, nullable=False)
    steps = Column(Integer, default=0, server_default="0", nullable=False)
    distance_km = Column(Float, default=0.0, server_default="0", nullable=False)
    started = Column(DateTime(timezone=True), nullable=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user = relationship("User", back_populates="activities")


class Milestone(Base):
    """Narrative checkpoint reached after ``target_steps`` cumulative steps."""

    __tablename__ = "milestones"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(MILESTONE_NAME_MAX_LENGTH), nullable=False, index=True)
    description = Column(String(MILESTONE_DESCRIPTION_MAX_LENGTH), nullable=False)
    target_steps = Column(Integer, default=0, server_default="0", nullable=False)


class Achievement(Base):
    """Badge unlocked once a user's total distance reaches ``target_distance_km``."""

    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(ACHIEVEMENT_NAME_MAX_LENGTH), nullable=False)
    description = Column(String(ACHIEVEMENT_DESCRIPTION_MAX_LENGTH), nullable=False)
    target_distance_km = Column(Float, nullable=False, index=True)
    badge_path = Column(String(BADGE_PATH_MAX_LENGTH), nullable=False)
