"""Ideathon registrations and their one-shot final submission."""

from __future__ import annotations

import json
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ..constants import (
    FINAL_SUBMISSION_SUBMITTED,
    PROGRESS_READY,
    ROLE_ADMIN,
    ROLE_ENTREPRENEUR,
)
from ..models.ideathon import Ideathon, IdeathonRegistration
from ..schemas.ideathon_schema import FinalSubmissionInput, RegistrationCreate
from .authorization import Actor, ensure_owner_or_admin, ensure_role
from .errors import InvalidStateError, NotFoundError, ValidationError
from .idea_service import get_idea
from .ids import parse_id

logger = logging.getLogger(__name__)


def _load_registration(db: Session, registration_id) -> IdeathonRegistration:
    registration = (
        db.query(IdeathonRegistration)
        .filter(IdeathonRegistration.id == parse_id(registration_id, "Registration"))
        .first()
    )
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def register_for_ideathon(
    db: Session, actor: Actor, payload: RegistrationCreate
) -> IdeathonRegistration:
    """Register a team for an ideathon. Admins may register someone else."""
    ensure_role(actor, ROLE_ENTREPRENEUR, ROLE_ADMIN, action="register for ideathons")

    ideathon = (
        db.query(Ideathon)
        .filter(Ideathon.id == parse_id(payload.ideathon_id, "Ideathon"))
        .first()
    )
    if ideathon is None:
        raise NotFoundError("Ideathon not found")

    entrepreneur_id = actor.id
    if actor.is_admin and payload.entrepreneur_id:
        entrepreneur_id = parse_id(payload.entrepreneur_id, "Entrepreneur")

    idea_id = None
    if payload.idea_id:
        idea = get_idea(db, payload.idea_id)
        if str(idea.user_id) != str(entrepreneur_id):
            raise ValidationError("The selected idea does not belong to the registrant")
        idea_id = idea.id

    existing = (
        db.query(IdeathonRegistration.id)
        .filter(
            IdeathonRegistration.ideathon_id == ideathon.id,
            IdeathonRegistration.entrepreneur_id == entrepreneur_id,
        )
        .first()
    )
    if existing is not None:
        raise ValidationError("Already registered for this ideathon")

    registration = IdeathonRegistration(
        ideathon_id=ideathon.id,
        entrepreneur_id=entrepreneur_id,
        idea_id=idea_id,
        registered_by=actor.id,
        team_name=payload.team_name,
        project_title=payload.project_title,
        project_description=payload.project_description,
        tech_stack=payload.tech_stack,
        github_repo=payload.github_repo,
        deadline_date=payload.deadline_date or ideathon.end_date,
    )
    db.add(registration)
    db.commit()
    db.refresh(registration)
    logger.info("Registration %s created for ideathon %s", registration.id, ideathon.id)
    return registration


def get_registration(db: Session, registration_id, actor: Actor) -> IdeathonRegistration:
    registration = _load_registration(db, registration_id)
    ensure_owner_or_admin(registration.entrepreneur_id, actor, "view this registration")
    return registration


def submit_final_project(
    db: Session, registration_id, actor: Actor, payload: FinalSubmissionInput
) -> IdeathonRegistration:
    """Record the final project submission. Irreversible; a second call is rejected."""
    registration = _load_registration(db, registration_id)
    ensure_owner_or_admin(registration.entrepreneur_id, actor, "submit for this registration")
    if registration.final_submission_status == FINAL_SUBMISSION_SUBMITTED:
        raise InvalidStateError("Final project has already been submitted")

    now = datetime.utcnow()
    registration.final_submission_json = json.dumps(payload.model_dump(mode="json", by_alias=True))
    registration.final_submission_status = FINAL_SUBMISSION_SUBMITTED
    registration.final_submitted_at = now
    registration.progress_status = PROGRESS_READY
    registration.current_progress = 100
    registration.last_updated = now

    db.commit()
    db.refresh(registration)
    logger.info("Final project submitted for registration %s by %s", registration.id, actor.id)
    return registration
