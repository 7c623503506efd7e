"""Pydantic schemas for request and response models used in the user_service.

Includes models for registration, login, the public user representation and
the success/error envelopes every endpoint responds with.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class RegisterRequest(BaseModel):
    """Schema for user registration requests."""

    model_config = ConfigDict(extra="ignore")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Schema for user login requests."""

    model_config = ConfigDict(extra="ignore")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class UserPublic(BaseModel):
    """User as exposed to clients; the password hash is never included."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Token(BaseModel):
    """Schema returned after successful authentication."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    token: str


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope for successful responses."""

    status: int = 200
    data: T


class ErrorResponse(BaseModel):
    """Envelope for failed responses."""

    status: int
    message: str


UserResponse = SuccessResponse[UserPublic]
UserListResponse = SuccessResponse[List[UserPublic]]
TokenResponse = SuccessResponse[Token]
