from typing import Optional

from pydantic import Field, field_validator

from .base import ApiModel, StrictInput


class IdeaInput(StrictInput):
    """Minimal idea intake used to anchor funding requests."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=10, max_length=5000)
    category: str = Field(..., min_length=1, max_length=255)
    stage: Optional[str] = Field(None, max_length=64)

    @field_validator("description")
    @classmethod
    def description_not_trivial(cls, v: str) -> str:
        if len(v.split()) < 3:
            raise ValueError("Idea description must be at least 3 words long.")
        return v


class IdeaRecord(ApiModel):
    id: str
    title: str
    description: str
    category: str
    stage: Optional[str] = None
    status: str
    owner_id: str


class IdeaResponse(ApiModel):
    success: bool = True
    message: str
    data: IdeaRecord


class IdeaListResponse(ApiModel):
    success: bool = True
    data: list[IdeaRecord] = Field(default_factory=list)
