from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..constants import IDEA_STATUS_ACTIVE, ROLE_ENTREPRENEUR
from ..models.idea import Idea
from ..schemas.idea_schema import IdeaInput
from .authorization import Actor, ensure_role
from .errors import NotFoundError, ValidationError
from .ids import parse_id

logger = logging.getLogger(__name__)


def create_idea(db: Session, payload: IdeaInput, actor: Actor) -> Idea:
    """Persist a new idea owned by the calling entrepreneur."""
    ensure_role(actor, ROLE_ENTREPRENEUR, action="submit ideas")
    idea = Idea(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        stage=payload.stage,
        status=IDEA_STATUS_ACTIVE,
        user_id=actor.id,
    )
    db.add(idea)
    db.commit()
    db.refresh(idea)
    logger.info("Idea %s created by %s", idea.id, actor.id)
    return idea


def list_ideas(db: Session, actor: Actor) -> list[Idea]:
    return (
        db.query(Idea)
        .filter(Idea.user_id == actor.id)
        .order_by(Idea.created_at.desc())
        .all()
    )


def get_idea(db: Session, idea_id) -> Idea:
    idea = db.query(Idea).filter(Idea.id == parse_id(idea_id, "Idea")).first()
    if idea is None:
        raise NotFoundError("Idea not found")
    return idea


def get_owned_idea(db: Session, idea_id, owner: Actor) -> Idea:
    """Look up an idea and check it belongs to `owner`.

    A missing idea is a NotFoundError; an idea owned by someone else is a
    ValidationError, because the caller supplied an idea they cannot use.
    """
    idea = get_idea(db, idea_id)
    if not owner.owns(idea.user_id):
        raise ValidationError("Not authorized to request funding for this idea")
    return idea
