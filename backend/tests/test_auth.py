"""Authentication tests — signup, login, JWT, password policy and protected routes."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fundbridge.database import Base, get_db
from fundbridge.main import app
from fundbridge.schemas.auth_schema import validate_password_strength
from fundbridge.services.auth_utils import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

# ---------------------------------------------------------------------------
# Test database setup (file-based SQLite for compatibility)
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_auth.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Strong password that passes all rules
STRONG_PW = "Str0ng!Pass"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_db, None)


def _signup(email="founder@example.com", role="entrepreneur", name="Test Founder"):
    return client.post("/api/auth/signup", json={
        "email": email,
        "name": name,
        "password": STRONG_PW,
        "role": role,
    })


# ===================================================================== #
#  Unit tests: auth_utils                                                 #
# ===================================================================== #

class TestPasswordHashing:
    def test_hash_and_verify(self):
        pw = "securePassword123!"
        hashed = hash_password(pw)
        assert hashed != pw
        assert verify_password(pw, hashed) is True

    def test_wrong_password(self):
        hashed = hash_password("Correct1!")
        assert verify_password("wrong", hashed) is False


class TestJWT:
    def test_create_and_decode(self):
        token = create_access_token("user-123", "test@example.com", "investor")
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["sub"] == "user-123"
        assert payload["email"] == "test@example.com"
        assert payload["role"] == "investor"

    def test_invalid_token(self):
        assert decode_access_token("garbage.token.here") is None


# ===================================================================== #
#  Unit tests: password policy                                             #
# ===================================================================== #

class TestPasswordPolicy:
    def test_strong_password_accepted(self):
        assert validate_password_strength(STRONG_PW) == STRONG_PW

    def test_weak_no_uppercase(self):
        with pytest.raises(ValueError, match="uppercase"):
            validate_password_strength("weak1pass!")

    def test_weak_no_number(self):
        with pytest.raises(ValueError, match="number"):
            validate_password_strength("WeakPass!!")

    def test_weak_no_special(self):
        with pytest.raises(ValueError, match="special"):
            validate_password_strength("WeakPass11")

    def test_weak_too_short(self):
        with pytest.raises(ValueError, match="8 characters"):
            validate_password_strength("Ab1!")

    def test_common_password_rejected(self):
        with pytest.raises(ValueError, match="common"):
            validate_password_strength("Password1!")  # "password" is common

    def test_weak_no_lowercase(self):
        with pytest.raises(ValueError, match="lowercase"):
            validate_password_strength("STRONG1!!")


# ===================================================================== #
#  Integration tests: auth routes                                         #
# ===================================================================== #

class TestSignup:
    def test_signup_success(self):
        resp = _signup("newuser@example.com", role="investor")
        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["accessToken"]
        assert data["tokenType"] == "bearer"
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["role"] == "investor"

    def test_signup_duplicate_email(self):
        _signup("dup@example.com")
        resp = _signup("dup@example.com")
        assert resp.status_code == 409
        assert resp.json()["success"] is False
        assert "already exists" in resp.json()["message"]

    def test_signup_weak_password_rejected(self):
        resp = client.post("/api/auth/signup", json={
            "email": "weak@example.com",
            "name": "Weak",
            "password": "weakpass",
            "role": "entrepreneur",
        })
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_signup_admin_role_rejected(self):
        resp = _signup("sneaky@example.com", role="admin")
        assert resp.status_code == 400

    def test_signup_unknown_field_rejected(self):
        resp = client.post("/api/auth/signup", json={
            "email": "extra@example.com",
            "name": "Extra",
            "password": STRONG_PW,
            "role": "entrepreneur",
            "isAdmin": True,
        })
        assert resp.status_code == 400


class TestLogin:
    def test_login_success(self):
        _signup("login@example.com")
        resp = client.post("/api/auth/login", json={
            "email": "login@example.com",
            "password": STRONG_PW,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["tokenType"] == "bearer"
        assert data["user"]["role"] == "entrepreneur"
        assert decode_access_token(data["accessToken"])["email"] == "login@example.com"

    def test_login_wrong_password(self):
        _signup("login@example.com")
        resp = client.post("/api/auth/login", json={
            "email": "login@example.com",
            "password": "WrongPass1!",
        })
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid email or password"

    def test_login_nonexistent_email(self):
        resp = client.post("/api/auth/login", json={
            "email": "nobody@example.com",
            "password": STRONG_PW,
        })
        assert resp.status_code == 401


class TestProtectedRoutes:
    def test_me_requires_auth(self):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_me_rejects_garbage_token(self):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.token"})
        assert resp.status_code == 401

    def test_me_with_auth(self):
        token = _signup("protected@example.com", name="Protected").json()["accessToken"]
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == "protected@example.com"
        assert data["name"] == "Protected"

    def test_funding_requests_require_auth(self):
        resp = client.get("/api/funding-requests")
        assert resp.status_code == 401

    def test_ideas_require_auth(self):
        resp = client.post("/api/ideas", json={
            "title": "Test",
            "description": "A test idea with enough words",
            "category": "tech",
        })
        assert resp.status_code == 401
