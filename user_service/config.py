"""Runtime configuration for the user_service.

Settings are read from the environment (optionally populated from a ``.env``
file) exactly once and exposed through :func:`get_settings`. Required values
are validated up front so a misconfigured deployment fails at startup rather
than on the first request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_DATABASE_URL = "DATABASE_URL"
ENV_SECRET_KEY = "SECRET_KEY"
ENV_ALGORITHM = "ALGORITHM"
ENV_ACCESS_EXPIRE = "ACCESS_TOKEN_EXPIRE_MINUTES"
ENV_HASH_TIME_COST = "PASSWORD_HASH_TIME_COST"
ENV_CREATE_SCHEMA = "CREATE_SCHEMA"
ENV_SQL_ECHO = "SQL_ECHO"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_ROOT_PATH = "ROOT_PATH"
ENV_PORT = "PORT"

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
MIN_SECRET_KEY_LENGTH = 32

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _parse_positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{key} must be a positive integer")
    return value


def _parse_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Validated service configuration."""

    database_url: str
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 5
    password_hash_time_cost: int = 3
    create_schema: bool = True
    sql_echo: bool = False
    log_level: str = "INFO"
    root_path: str = ""
    port: int = 8080

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError(f"{ENV_DATABASE_URL} must be set in the environment")
        if not self.secret_key:
            raise ValueError(f"{ENV_SECRET_KEY} must be set in the environment")
        if self.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"{ENV_ALGORITHM} must be one of {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        if self.access_token_expire_minutes <= 0:
            raise ValueError(f"{ENV_ACCESS_EXPIRE} must be a positive integer")
        if self.password_hash_time_cost <= 0:
            raise ValueError(f"{ENV_HASH_TIME_COST} must be a positive integer")
        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            logger.warning(
                "%s is shorter than %d characters; token signatures are weak",
                ENV_SECRET_KEY,
                MIN_SECRET_KEY_LENGTH,
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to :data:`os.environ`)."""
        if env is None:
            env = os.environ
        return cls(
            database_url=env.get(ENV_DATABASE_URL, ""),
            secret_key=env.get(ENV_SECRET_KEY, ""),
            algorithm=env.get(ENV_ALGORITHM) or "HS256",
            access_token_expire_minutes=_parse_positive_int(env, ENV_ACCESS_EXPIRE, 5),
            password_hash_time_cost=_parse_positive_int(env, ENV_HASH_TIME_COST, 3),
            create_schema=_parse_bool(env, ENV_CREATE_SCHEMA, True),
            sql_echo=_parse_bool(env, ENV_SQL_ECHO, False),
            log_level=(env.get(ENV_LOG_LEVEL) or "INFO").upper(),
            root_path=env.get(ENV_ROOT_PATH, ""),
            port=_parse_positive_int(env, ENV_PORT, 8080),
        )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading ``.env`` on first use."""
    load_dotenv()
    return Settings.from_env()
