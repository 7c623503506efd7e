"""
tests/conftest.py -- Shared fixtures for the user_service tests.

Each test gets its own SQLite database file under ``tmp_path``: the app
reaches it through aiosqlite, while tests inspect stored rows through a
plain synchronous SQLAlchemy engine on the same file.

Environment variables must be set before importing ``user_service.app``
because the module builds its default application from the environment.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789")
os.environ.setdefault("PASSWORD_HASH_TIME_COST", "1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from user_service.app import create_app
from user_service.config import Settings
from user_service.models import User

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789"

ALICE = {"email": "a@x.com", "password": "p1", "name": "A"}
BOB = {"email": "b@x.com", "password": "p2", "name": "B"}


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "users.db"


@pytest.fixture
def settings(db_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{db_path}",
        secret_key=TEST_SECRET_KEY,
        password_hash_time_cost=1,
    )


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """TestClient running the full app (lifespan included) on a fresh DB."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def stored_users(db_path: Path):
    """Return a callable that reads the ``users`` table as committed on disk."""
    engine = create_engine(f"sqlite:///{db_path}")

    def _read() -> list[User]:
        with Session(engine, expire_on_commit=False) as session:
            return list(session.scalars(select(User).order_by(User.id)))

    yield _read
    engine.dispose()


def register(client: TestClient, payload: dict):
    return client.post("/register", json=payload)


def login(client: TestClient, email: str, password: str):
    return client.post("/login", json={"email": email, "password": password})


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    """Register ALICE, log in and return a bearer Authorization header."""
    assert register(client, ALICE).status_code == 200
    resp = login(client, ALICE["email"], ALICE["password"])
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}
