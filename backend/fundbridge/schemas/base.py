"""Shared pydantic base classes.

API bodies are camelCase on the wire; snake_case keys are accepted too.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

class StrictInput(ApiModel):
    """Request body that rejects unknown fields instead of ignoring them."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ErrorResponse(ApiModel):
    success: bool = False
    message: str
    errors: Optional[list[str]] = None
