"""
Milestone API Endpoints

Narrative checkpoints along the journey. Reads are public, mutations
require the admin role.
"""
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from typing import List

from core.auth import Operation, require_role_for
from core.database import get_db
from core.exceptions import NotFoundError
from schemas import MilestoneCreate, MilestoneResponse
from services.entities import Milestone
from services.repositories import MilestoneRepository

router = APIRouter(prefix="/api/milestones", tags=["milestones"])


@router.get("", response_model=List[MilestoneResponse])
def get_all_milestones(response: Response, db: Session = Depends(get_db)):
    milestones = MilestoneRepository(db).get_all()
    if not milestones:
        response.status_code = status.HTTP_404_NOT_FOUND
    return milestones


@router.get("/name/{name}", response_model=MilestoneResponse)
def get_milestone_by_name(name: str, db: Session = Depends(get_db)):
    milestone = MilestoneRepository(db).find_by_name(name)
    if milestone is None:
        raise NotFoundError("Milestone", name)
    return milestone


@router.get("/{milestone_id}", response_model=MilestoneResponse)
def get_milestone_by_id(milestone_id: int, db: Session = Depends(get_db)):
    milestone = MilestoneRepository(db).find_by_id(milestone_id)
    if milestone is None:
        raise NotFoundError("Milestone", milestone_id)
    return milestone


@router.post(
    "",
    response_model=MilestoneResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role_for(Operation.CREATE_MILESTONE))],
)
def add_milestone(body: MilestoneCreate, db: Session = Depends(get_db)):
    milestone = Milestone(
        id=0,
        name=body.name,
        description=body.description,
        target_steps=body.target_steps,
    )
    milestone.id = MilestoneRepository(db).save(milestone)
    return milestone


@router.patch(
    "/{milestone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.UPDATE_MILESTONE))],
)
def update_milestone(milestone_id: int, body: MilestoneCreate, db: Session = Depends(get_db)):
    milestone = Milestone(
        id=milestone_id,
        name=body.name,
        description=body.description,
        target_steps=body.target_steps,
    )
    if MilestoneRepository(db).update(milestone_id, milestone) == 0:
        raise NotFoundError("Milestone", milestone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{milestone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_role_for(Operation.DELETE_MILESTONE))],
)
def delete_milestone(milestone_id: int, db: Session = Depends(get_db)):
    if MilestoneRepository(db).delete(milestone_id) == 0:
        raise NotFoundError("Milestone", milestone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
