"""Login and access-token enforcement.

:class:`SessionIssuer` checks login credentials and signs the access token.
:func:`get_current_user` is the FastAPI dependency that every protected
route uses; it validates the bearer token's signature and expiry and loads
the user named by its ``sub`` claim.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.config import Settings
from user_service.database import get_db
from user_service.errors import InvalidCredentials, Unauthorized
from user_service.models import User
from user_service.security import (
    CredentialManager,
    create_access_token,
    decode_access_token,
)
from user_service.users import get_user_by_email, get_user_by_id

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


class SessionIssuer:
    """Validates login credentials and issues signed, expiring tokens."""

    def __init__(
        self,
        credentials: CredentialManager,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=5),
    ) -> None:
        self.credentials = credentials
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(
        cls, settings: Settings, credentials: CredentialManager
    ) -> "SessionIssuer":
        return cls(
            credentials,
            secret_key=settings.secret_key,
            algorithm=settings.algorithm,
            ttl=timedelta(minutes=settings.access_token_expire_minutes),
        )

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> str:
        """Return a signed token for the user owning ``email`` and ``password``.

        An unknown email and a wrong password both raise the same
        :class:`InvalidCredentials`.
        """
        user = await get_user_by_email(db, email)
        if user is None:
            await asyncio.to_thread(self.credentials.verify_dummy, password)
            logger.info("Login rejected: unknown email")
            raise InvalidCredentials()

        valid = await asyncio.to_thread(self.credentials.verify, password, user.password)
        if not valid:
            logger.info("Login rejected for user id=%s: wrong password", user.id)
            raise InvalidCredentials()

        if self.credentials.needs_rehash(user.password):
            user.password = await asyncio.to_thread(self.credentials.hash, password)
            await db.commit()
            logger.info("Upgraded password hash for user id=%s", user.id)

        logger.info("Login succeeded for user id=%s", user.id)
        return self.issue_token(user)

    def issue_token(self, user: User, now: Optional[datetime] = None) -> str:
        claims = {"sub": str(user.id), "username": user.name}
        return create_access_token(
            claims, self.secret_key, self.algorithm, self.ttl, now=now
        )

    def decode(self, token: str) -> dict:
        return decode_access_token(token, self.secret_key, self.algorithm)


def get_credential_manager(request: Request) -> CredentialManager:
    return request.app.state.credentials


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Require a valid bearer token and return the user it names.

    Raises :class:`Unauthorized` when the header is missing, the token is
    forged or expired, or its user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized()

    payload = issuer.decode(credentials.credentials)
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid token")

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise Unauthorized("Invalid token")
    return user
