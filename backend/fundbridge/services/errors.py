"""Service-layer error taxonomy.

Each error carries the HTTP status it maps to; `main.py` renders all of
them as ``{"success": false, "message": ...}``.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Malformed or out-of-range input."""

    status_code = 400


class AuthorizationError(ServiceError):
    """The actor lacks rights for the operation."""

    status_code = 403


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    status_code = 404


class InvalidStateError(ServiceError):
    """The operation is not legal for the record's current state."""

    status_code = 409
