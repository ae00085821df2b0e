"""
User API Endpoints

CRUD for companions. Mutations require the admin role (X-User-Role).
Deleting a user removes all of their activities.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from core.auth import Operation, require_role_for
from core.database import get_db
from core.exceptions import NotFoundError
from schemas import UserCreate, UserResponse
from services.entities import User
from services.repositories import UserRepository

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def get_all_users(response: Response, db: Session = Depends(get_db)):
    """Return all users (404 with an empty list when there are none)."""
    users = UserRepository(db).get_all()
    if not users:
        response.status_code = status.HTTP_404_NOT_FOUND
    return users


@router.get("/email/{email}", response_model=UserResponse)
def get_user_by_email(email: str, db: Session = Depends(get_db)):
    user = UserRepository(db).find_by_email(email)
    if user is None:
        raise NotFoundError("User", email)
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user_by_user_id(user_id: int, db: Session = Depends(get_db)):
    user = UserRepository(db).find_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role_for(Operation.CREATE_USER))],
)
def add_user(body: UserCreate, db: Session = Depends(get_db)):
    """Create a user and return it with its generated id."""
    user = User(id=0, name=body.name, email=body.email)
    user.id = UserRepository(db).save(user)
    return user


@router.patch(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.UPDATE_USER))],
)
def update_user(user_id: int, body: UserCreate, db: Session = Depends(get_db)):
    user = User(id=user_id, name=body.name, email=body.email)
    if UserRepository(db).update(user_id, user) == 0:
        raise NotFoundError("User", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.DELETE_USER))],
)
def delete_user(user_id: int, db: Session = Depends(get_db)):
    """Delete a user together with all of their activities."""
    if UserRepository(db).delete(user_id) == 0:
        raise NotFoundError("User", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
