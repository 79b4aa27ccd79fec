"""Ideathon registration and final-submission schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from .base import ApiModel, StrictInput


class RegistrationCreate(StrictInput):
    ideathon_id: str = Field(..., min_length=1)
    team_name: str = Field(..., min_length=1, max_length=255)
    project_title: str = Field(..., min_length=1, max_length=255)
    project_description: Optional[str] = None
    idea_id: Optional[str] = None
    tech_stack: Optional[str] = Field(None, max_length=512)
    github_repo: Optional[str] = Field(None, max_length=1024)
    deadline_date: Optional[datetime] = None
    # Admins may register on behalf of an entrepreneur.
    entrepreneur_id: Optional[str] = None


class AdditionalMaterial(StrictInput):
    title: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1)
    description: Optional[str] = None


class FinalSubmissionInput(StrictInput):
    project_summary: str = Field(..., min_length=1)
    technical_implementation: Optional[str] = None
    challenges: Optional[str] = None
    future_enhancements: Optional[str] = None
    team_contributions: Optional[str] = None
    demo_video: Optional[str] = None
    github_final_repo: Optional[str] = None
    live_demo_link: Optional[str] = None
    additional_materials: list[AdditionalMaterial] = Field(default_factory=list)


class FinalSubmissionRecord(ApiModel):
    status: str
    submitted_at: Optional[datetime] = None
    content: Optional[dict[str, Any]] = None


class RegistrationRecord(ApiModel):
    id: str
    ideathon_id: str
    entrepreneur_id: str
    idea_id: Optional[str] = None
    team_name: str
    project_title: str
    project_description: Optional[str] = None
    status: str
    progress_status: str
    current_progress: int
    last_updated: Optional[datetime] = None
    deadline_date: Optional[datetime] = None
    final_submission: FinalSubmissionRecord
    created_at: datetime


class RegistrationEnvelope(ApiModel):
    success: bool = True
    message: Optional[str] = None
    data: RegistrationRecord
