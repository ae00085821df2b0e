"""
Role-based authorization gate.

There is no authentication: callers state their role in the X-User-Role
header. Every mutating operation is checked against that role through
`authorize()` before anything is persisted; reads are never gated.

Usage:
    @router.delete("/api/users/{user_id}")
    def delete_user(user_id: int, _: None = Depends(require_role_for(Operation.DELETE_USER))):
        ...
"""
from enum import Enum
from typing import Callable, Optional
import logging

from fastapi import Header

from core.exceptions import ForbiddenError

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
ROLE_HEADER = "X-User-Role"


class Operation(str, Enum):
    """Every operation the API dispatches to the domain layer."""

    LIST_USERS = "users.list"
    READ_USER = "users.read"
    CREATE_USER = "users.create"
    UPDATE_USER = "users.update"
    DELETE_USER = "users.delete"

    LIST_ACTIVITIES = "activities.list"
    READ_ACTIVITY = "activities.read"
    CREATE_ACTIVITY = "activities.create"
    CREATE_MAP_ACTIVITY = "activities.create_from_map"
    UPDATE_ACTIVITY = "activities.update"
    DELETE_ACTIVITY = "activities.delete"
    DELETE_USER_ACTIVITIES = "activities.delete_by_user"

    LIST_MILESTONES = "milestones.list"
    READ_MILESTONE = "milestones.read"
    CREATE_MILESTONE = "milestones.create"
    UPDATE_MILESTONE = "milestones.update"
    DELETE_MILESTONE = "milestones.delete"

    LIST_ACHIEVEMENTS = "achievements.list"
    READ_ACHIEVEMENT = "achievements.read"
    RESOLVE_USER_ACHIEVEMENTS = "achievements.resolve_for_user"
    CREATE_ACHIEVEMENT = "achievements.create"
    UPDATE_ACHIEVEMENT = "achievements.update"
    DELETE_ACHIEVEMENT = "achievements.delete"


MUTATING_OPERATIONS = frozenset({
    Operation.CREATE_USER,
    Operation.UPDATE_USER,
    Operation.DELETE_USER,
    Operation.CREATE_ACTIVITY,
    Operation.CREATE_MAP_ACTIVITY,
    Operation.UPDATE_ACTIVITY,
    Operation.DELETE_ACTIVITY,
    Operation.DELETE_USER_ACTIVITIES,
    Operation.CREATE_MILESTONE,
    Operation.UPDATE_MILESTONE,
    Operation.DELETE_MILESTONE,
    Operation.CREATE_ACHIEVEMENT,
    Operation.UPDATE_ACHIEVEMENT,
    Operation.DELETE_ACHIEVEMENT,
})


def is_admin(role: Optional[str]) -> bool:
    """True when ``role`` is the privileged role, ignoring case."""
    if not role:
        return False
    return role.casefold() == ADMIN_ROLE


def authorize(role: Optional[str], operation: Operation) -> bool:
    """
    Decide whether a caller holding ``role`` may perform ``operation``.

    Reads always pass. Mutations require the admin role.
    """
    if operation not in MUTATING_OPERATIONS:
        return True
    return is_admin(role)


def require_role_for(operation: Operation) -> Callable[..., None]:
    """
    Dependency factory enforcing `authorize()` for a single operation.

    Raises ForbiddenError (403) when the supplied role is not allowed.
    """
    def role_checker(
        x_user_role: Optional[str] = Header(default=None, alias=ROLE_HEADER),
    ) -> None:
        if not authorize(x_user_role, operation):
            logger.info(f"Denied {operation.value} for role {x_user_role!r}")
            raise ForbiddenError()

    return role_checker
