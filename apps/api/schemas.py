from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

from models import (
    ACTIVITY_DESCRIPTION_MAX_LENGTH,
    MILESTONE_DESCRIPTION_MAX_LENGTH,
    MILESTONE_NAME_MAX_LENGTH,
)

# Wire format is camelCase (userId, distanceKm, ...); Python code uses the
# snake_case field names.
_camel_config = ConfigDict(populate_by_name=True, from_attributes=True)


class UserCreate(BaseModel):
    """Body for creating or replacing a user. Any ``id`` in the body is ignored."""
    model_config = _camel_config

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=1, max_length=255)


class UserResponse(BaseModel):
    model_config = _camel_config

    id: int
    name: str
    email: str


class ActivityCreate(BaseModel):
    """Body for creating or replacing an activity."""
    model_config = _camel_config

    description: str = Field(..., max_length=ACTIVITY_DESCRIPTION_MAX_LENGTH)
    duration: float = Field(..., ge=0)  # minutes
    calories: int = Field(..., ge=0)
    started: datetime
    user_id: int = Field(..., alias="userId")
    steps: int = Field(default=0, ge=0)
    distance_km: float = Field(default=0.0, ge=0, alias="distanceKm")


class ActivityResponse(BaseModel):
    model_config = _camel_config

    id: int
    description: str
    duration: float
    calories: int
    started: datetime
    user_id: int = Field(..., alias="userId")
    steps: int = 0
    distance_km: float = Field(default=0.0, alias="distanceKm")


class ActivityMapCreate(BaseModel):
    """Two map points an activity is synthesized from."""
    model_config = _camel_config

    start_lat: float = Field(..., ge=-90, le=90, alias="startLat")
    start_lng: float = Field(..., ge=-180, le=180, alias="startLng")
    end_lat: float = Field(..., ge=-90, le=90, alias="endLat")
    end_lng: float = Field(..., ge=-180, le=180, alias="endLng")


class MilestoneCreate(BaseModel):
    model_config = _camel_config

    name: str = Field(..., min_length=1, max_length=MILESTONE_NAME_MAX_LENGTH)
    description: str = Field(..., max_length=MILESTONE_DESCRIPTION_MAX_LENGTH)
    target_steps: int = Field(default=0, ge=0, alias="targetSteps")


class MilestoneResponse(BaseModel):
    model_config = _camel_config

    id: int
    name: str
    description: str
    target_steps: int = Field(default=0, alias="targetSteps")


class AchievementResponse(BaseModel):
    model_config = _camel_config

    id: int
    name: str
    description: str
    target_distance_km: float = Field(..., alias="targetDistanceKm")
    badge_path: str = Field(..., alias="badgePath")
