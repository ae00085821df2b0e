"""
Domain records for the journey tracker.

These are plain value objects handed between the repositories, the
geo-estimation pipeline and the routers. They carry no behaviour beyond
equality and copying (``dataclasses.replace``); invariants such as a
non-negative achievement threshold are validated at the API boundary.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered companion."""

    id: int
    name: str
    email: str


@dataclass
class Activity:
    """
    A single physical activity or journey towards Mordor.

    ``steps`` and ``distance_km`` feed milestone progress and
    achievement resolution respectively.
    """

    id: int
    description: str
    duration: float  # minutes
    calories: int
    started: datetime
    user_id: int
    steps: int = 0
    distance_km: float = 0.0


@dataclass
class Milestone:
    """Narrative checkpoint reached after ``target_steps`` cumulative steps."""

    id: int
    name: str
    description: str
    target_steps: int = 0


@dataclass
class Achievement:
    """Badge unlocked once total logged distance reaches ``target_distance_km``."""

    id: int
    name: str
    description: str
    target_distance_km: float
    badge_path: str


@dataclass(frozen=True)
class ActivityMapRequest:
    """Two map points (decimal degrees) an activity is synthesized from."""

    start_lat: float
    start_lng: float
    end_lat: float
    end_lng: float
