"""Idea routes — the minimal idea intake funding requests are anchored to."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.idea import Idea
from ..schemas.idea_schema import IdeaInput, IdeaListResponse, IdeaRecord, IdeaResponse
from ..services import idea_service
from ..services.auth_dependency import get_current_actor
from ..services.authorization import Actor

router = APIRouter(prefix="/api/ideas", tags=["Ideas"])


def _idea_to_record(idea: Idea) -> IdeaRecord:
    return IdeaRecord(
        id=str(idea.id),
        title=idea.title,
        description=idea.description,
        category=idea.category,
        stage=idea.stage,
        status=idea.status,
        owner_id=str(idea.user_id),
    )


@router.post(
    "",
    response_model=IdeaResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new idea",
)
def create_idea(
    payload: IdeaInput,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> IdeaResponse:
    """Accept a startup idea from an entrepreneur and persist it."""
    try:
        idea = idea_service.create_idea(db, payload, actor)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store idea: {exc}",
        ) from exc

    return IdeaResponse(message="Idea created successfully", data=_idea_to_record(idea))


@router.get("", response_model=IdeaListResponse, summary="List the caller's ideas")
def list_ideas(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> IdeaListResponse:
    ideas = idea_service.list_ideas(db, actor)
    return IdeaListResponse(data=[_idea_to_record(i) for i in ideas])
