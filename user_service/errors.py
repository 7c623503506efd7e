"""Exception types raised by the user_service.

Every error carries the HTTP status and the client-facing message used to
build the ``{"status": ..., "message": ...}`` error envelope.
"""

from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that are reported to the client."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"status": self.status_code, "message": self.message}


class BadRequest(ServiceError):
    status_code = 400
    message = "Invalid request payload"


class EmailAlreadyRegistered(BadRequest):
    message = "Email already registered"


class InvalidCredentials(ServiceError):
    """Login failure; the same for an unknown email and a wrong password."""

    status_code = 401
    message = "Invalid credentials"


class Unauthorized(ServiceError):
    status_code = 401
    message = "Unauthorized"


class NotFound(ServiceError):
    status_code = 404
    message = "Not found"


class UserNotFound(NotFound):
    message = "User not found"


class InternalFailure(ServiceError):
    status_code = 500
    message = "Internal server error"


class PasswordHashingError(InternalFailure):
    """The password hashing transform could not run."""


class TokenSigningError(InternalFailure):
    """The access token could not be signed."""
