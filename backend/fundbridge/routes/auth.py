"""Authentication routes — signup, login and the current-user lookup."""

from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.auth_schema import AuthResponse, LoginRequest, SignupRequest, UserPublic
from ..services.auth_dependency import get_current_user
from ..services.auth_utils import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _user_public(user: User) -> UserPublic:
    return UserPublic(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
    )


def _auth_response(user: User) -> AuthResponse:
    token = create_access_token(str(user.id), user.email, user.role)
    return AuthResponse(access_token=token, user=_user_public(user))


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new entrepreneur or investor",
)
def signup(payload: SignupRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Create a new user and return an access token for it."""
    email = payload.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    user = User(
        id=uuid4(),
        email=email,
        name=payload.name,
        hashed_password=hash_password(payload.password),
        role=payload.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    print(f"✅ [Auth] User signed up: {user.email} ({user.role})")
    return _auth_response(user)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in with email and password",
)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthResponse:
    """Authenticate a user and return a JWT access token."""
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if user is None or not verify_password(payload.password, user.hashed_password):
        logger.info("Failed login attempt for %s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    print(f"✅ [Auth] User logged in: {user.email}")
    return _auth_response(user)


@router.get("/me", response_model=UserPublic, summary="Get current user")
def get_me(user: User = Depends(get_current_user)) -> UserPublic:
    """Return the authenticated user's public profile."""
    return _user_public(user)
