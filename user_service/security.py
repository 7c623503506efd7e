"""Security helpers: password hashing, verification and JWT handling.

:class:`CredentialManager` wraps :class:`passlib.context.CryptContext` for
Argon2 hashing with a configurable time cost. Token helpers wrap :mod:`jwt`
(PyJWT) for encoding and decoding the short-lived access tokens issued at
login and checked on every protected request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from user_service.errors import PasswordHashingError, TokenSigningError, Unauthorized

logger = logging.getLogger(__name__)

DEFAULT_TIME_COST = 3
# Upper bound on the time cost accepted from a stored hash.
MAX_TIME_COST = 16

# Claims every access token must carry.
REQUIRED_CLAIMS = ["sub", "exp"]


class CredentialManager:
    """Turns plaintext passwords into one-way secrets and checks them."""

    def __init__(self, time_cost: int = DEFAULT_TIME_COST) -> None:
        self.time_cost = time_cost
        self.max_time_cost = max(time_cost, MAX_TIME_COST)
        self._context = CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=time_cost,
            argon2__min_rounds=time_cost,
        )
        self._handler = self._context.handler("argon2")
        self._dummy_hash: str = self.hash("user-service-timing-dummy")

    def hash(self, password: str) -> str:
        """Return a salted Argon2 hash of ``password``.

        Raises :class:`PasswordHashingError` if the transform cannot run.
        """
        try:
            return self._context.hash(password)
        except Exception as exc:
            logger.error("Password hashing failed: %s", exc)
            raise PasswordHashingError() from exc

    def _within_policy(self, hashed_password: str) -> bool:
        """Check the cost parameters embedded in a stored hash.

        Hashes carrying associated data, or asking for more time or memory
        than this service ever configures, are refused before any work is
        spent on them.
        """
        try:
            parsed = self._handler.from_string(hashed_password)
        except (ValueError, TypeError, NotImplementedError):
            return False
        if getattr(parsed, "data", None):
            return False
        return (
            parsed.rounds <= self.max_time_cost
            and parsed.memory_cost <= self._handler.memory_cost
        )

    def verify(self, password: str, hashed_password: Optional[str]) -> bool:
        """Return ``True`` if ``password`` matches ``hashed_password``.

        A missing, empty, unrecognised or out-of-policy hash is treated as a
        mismatch.
        """
        if not hashed_password or not self._within_policy(hashed_password):
            return False
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError, NotImplementedError):
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """Return ``True`` if the hash was made with weaker parameters."""
        try:
            return self._context.needs_update(hashed_password)
        except (ValueError, TypeError, NotImplementedError):
            return True

    def verify_dummy(self, password: str) -> None:
        """Spend one verification on a throwaway hash.

        Used when the account does not exist so the response time matches a
        wrong-password attempt.
        """
        self.verify(password, self._dummy_hash)


def create_access_token(
    data: Dict[str, Any],
    secret_key: str,
    algorithm: str,
    expires_delta: timedelta,
    now: Optional[datetime] = None,
) -> str:
    """Create a JWT access token containing ``data``, ``iat`` and ``exp``.

    Raises :class:`TokenSigningError` if the token cannot be signed.
    """
    issued_at = now or datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({"iat": issued_at, "exp": issued_at + expires_delta})
    try:
        return jwt.encode(to_encode, secret_key, algorithm=algorithm)
    except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
        logger.error("Token signing failed: %s", exc)
        raise TokenSigningError() from exc


def decode_access_token(token: str, secret_key: str, algorithm: str) -> Dict[str, Any]:
    """Decode a JWT access token and return its payload.

    Raises :class:`Unauthorized` on invalid or expired tokens.
    """
    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")
