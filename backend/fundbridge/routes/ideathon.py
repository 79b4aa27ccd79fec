"""Ideathon registration routes.

Endpoints:
  POST /api/ideathon-registrations                         — Register a team
  GET  /api/ideathon-registrations/{id}                    — Registration details
  PUT  /api/ideathon-registrations/{id}/final-submission   — One-shot final submission
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.ideathon import IdeathonRegistration
from ..schemas.ideathon_schema import (
    FinalSubmissionInput,
    FinalSubmissionRecord,
    RegistrationCreate,
    RegistrationEnvelope,
    RegistrationRecord,
)
from ..services import ideathon_service
from ..services.auth_dependency import get_current_actor
from ..services.authorization import Actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ideathon-registrations", tags=["Ideathons"])


@contextmanager
def _persistence_errors(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Persistence failure while %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error {action}: {exc}",
        ) from exc


def _registration_to_record(registration: IdeathonRegistration) -> RegistrationRecord:
    content = None
    if registration.final_submission_json:
        content = json.loads(registration.final_submission_json)

    return RegistrationRecord(
        id=str(registration.id),
        ideathon_id=str(registration.ideathon_id),
        entrepreneur_id=str(registration.entrepreneur_id),
        idea_id=str(registration.idea_id) if registration.idea_id else None,
        team_name=registration.team_name,
        project_title=registration.project_title,
        project_description=registration.project_description,
        status=registration.status,
        progress_status=registration.progress_status,
        current_progress=registration.current_progress,
        last_updated=registration.last_updated,
        deadline_date=registration.deadline_date,
        final_submission=FinalSubmissionRecord(
            status=registration.final_submission_status,
            submitted_at=registration.final_submitted_at,
            content=content,
        ),
        created_at=registration.created_at,
    )


@router.post(
    "",
    response_model=RegistrationEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Register for an ideathon",
)
def register(
    payload: RegistrationCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> RegistrationEnvelope:
    with _persistence_errors(db, "registering for ideathon"):
        registration = ideathon_service.register_for_ideathon(db, actor, payload)
    return RegistrationEnvelope(
        message="Registered for ideathon successfully",
        data=_registration_to_record(registration),
    )


@router.get(
    "/{registration_id}",
    response_model=RegistrationEnvelope,
    summary="Get a registration",
)
def get_registration(
    registration_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> RegistrationEnvelope:
    with _persistence_errors(db, "fetching ideathon registration"):
        registration = ideathon_service.get_registration(db, registration_id, actor)
        return RegistrationEnvelope(data=_registration_to_record(registration))


@router.put(
    "/{registration_id}/final-submission",
    response_model=RegistrationEnvelope,
    summary="Submit the final project",
)
def submit_final_project(
    registration_id: str,
    payload: FinalSubmissionInput,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> RegistrationEnvelope:
    with _persistence_errors(db, "submitting final project"):
        registration = ideathon_service.submit_final_project(db, registration_id, actor, payload)
    return RegistrationEnvelope(
        message="Final project submitted successfully",
        data=_registration_to_record(registration),
    )
