"""Authentication request/response schemas."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from .base import ApiModel, StrictInput

# ---------------------------------------------------------------------------
# Password policy
# ---------------------------------------------------------------------------
COMMON_PASSWORDS = {
    "password", "password1", "123456", "12345678", "123456789",
    "qwerty", "abc123", "letmein", "welcome", "admin",
    "investor", "startup", "founder", "funding", "money",
}

_PW_MIN_LENGTH = 8
_PW_RULES = [
    (r"[A-Z]", "one uppercase letter"),
    (r"[a-z]", "one lowercase letter"),
    (r"[0-9]", "one number"),
    (r"[^A-Za-z0-9]", "one special character"),
]


def validate_password_strength(password: str) -> str:
    """Return the password unchanged or raise ValueError listing what is missing."""
    missing: list[str] = []
    if len(password) < _PW_MIN_LENGTH:
        missing.append(f"at least {_PW_MIN_LENGTH} characters")
    missing.extend(label for pattern, label in _PW_RULES if not re.search(pattern, password))
    letters_only = re.sub(r"[^a-z]", "", password.lower())
    if password.lower() in COMMON_PASSWORDS or letters_only in COMMON_PASSWORDS:
        missing.append("not be a common password")
    if missing:
        raise ValueError(f"Password must contain {', '.join(missing)}.")
    return password


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------

class SignupRequest(StrictInput):
    email: EmailStr = Field(..., description="User email address")
    name: str = Field(..., min_length=2, max_length=120, description="Display name")
    password: str = Field(..., description="Strong password")
    role: Literal["entrepreneur", "investor"] = Field(
        ..., description="Marketplace role; admin accounts are provisioned separately"
    )

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class LoginRequest(StrictInput):
    email: EmailStr
    password: str


class UserPublic(ApiModel):
    id: str
    email: str
    name: str
    role: str


class AuthResponse(ApiModel):
    success: bool = True
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer")
    user: UserPublic
