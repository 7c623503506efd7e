"""User management FastAPI application.

Endpoints:

- ``POST /register``: create a user; the password is stored hashed and the
  created user is returned without it.
- ``POST /login``: check credentials and return a signed, expiring JWT.
- ``GET /user``: the user named by the bearer token.
- ``GET /users``: all users.
- ``DELETE /users/{user_id}``: delete a user and return the remaining ones.
- ``GET /health``: liveness probe.

Every response is a JSON envelope: ``{"status", "data"}`` on success and
``{"status", "message"}`` on failure, with the HTTP status code matching
``status``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from user_service.auth import (
    SessionIssuer,
    get_credential_manager,
    get_current_user,
    get_session_issuer,
)
from user_service.config import Settings, get_settings
from user_service.database import Database, get_db
from user_service.errors import BadRequest, InternalFailure, ServiceError
from user_service.models import User
from user_service.schemas import (
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserListResponse,
    UserPublic,
    UserResponse,
)
from user_service.security import CredentialManager
from user_service import users as user_store

logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


class UTF8JSONResponse(JSONResponse):
    media_type = "application/json; charset=UTF-8"


def _error_response(
    status_code: int, message: str, headers: Optional[Dict[str, str]] = None
) -> UTF8JSONResponse:
    return UTF8JSONResponse(
        status_code=status_code,
        content={"status": status_code, "message": message},
        headers=headers,
    )


def _user_list(users) -> Dict[str, object]:
    return {"status": 200, "data": [UserPublic.model_validate(u) for u in users]}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    The storage handle is created from ``settings`` at startup, shared
    through ``app.state.database`` and disposed at shutdown.
    """
    if settings is None:
        settings = get_settings()

    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(settings.database_url, echo=settings.sql_echo)
        app.state.database = db
        if settings.create_schema:
            await db.create_schema()
        logger.info("user_service started")
        try:
            yield
        finally:
            await db.dispose()
            logger.info("user_service stopped")

    app = FastAPI(
        root_path=settings.root_path,
        title="User Service",
        lifespan=lifespan,
        default_response_class=UTF8JSONResponse,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    credentials = CredentialManager(time_cost=settings.password_hash_time_cost)
    app.state.credentials = credentials
    app.state.session_issuer = SessionIssuer.from_settings(settings, credentials)

    _install_middleware(app)
    _install_exception_handlers(app)
    _install_routes(app)
    return app


def _install_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return UTF8JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.debug("Rejected payload on %s: %s", request.url.path, exc.errors())
        return _error_response(BadRequest.status_code, BadRequest.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(
            exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(InternalFailure.status_code, InternalFailure.message)


def _install_routes(app: FastAPI) -> None:
    @app.post("/register", response_model=UserResponse, responses=_ERROR_RESPONSES)
    async def register(
        payload: RegisterRequest,
        db: AsyncSession = Depends(get_db),
        credentials: CredentialManager = Depends(get_credential_manager),
    ) -> dict:
        """Register a new user.

        Rejects a taken email, hashes the password off the event loop and
        persists the ``User``; the created record is returned without its
        password.
        """
        hashed_password = await asyncio.to_thread(credentials.hash, payload.password)
        user = await user_store.create_user(
            db,
            name=payload.name,
            email=payload.email,
            hashed_password=hashed_password,
        )
        return {"status": 200, "data": UserPublic.model_validate(user)}

    @app.post("/login", response_model=TokenResponse, responses=_ERROR_RESPONSES)
    async def login(
        payload: LoginRequest,
        db: AsyncSession = Depends(get_db),
        issuer: SessionIssuer = Depends(get_session_issuer),
    ) -> dict:
        """Authenticate a user and return an access token."""
        token = await issuer.authenticate(db, payload.email, payload.password)
        return {"status": 200, "data": {"token": token}}

    @app.get("/user", response_model=UserResponse, responses=_ERROR_RESPONSES)
    async def current_user(user: User = Depends(get_current_user)) -> dict:
        return {"status": 200, "data": UserPublic.model_validate(user)}

    @app.get("/users", response_model=UserListResponse, responses=_ERROR_RESPONSES)
    async def get_users(
        db: AsyncSession = Depends(get_db),
        _user: User = Depends(get_current_user),
    ) -> dict:
        return _user_list(await user_store.list_users(db))

    @app.delete(
        "/users/{user_id}", response_model=UserListResponse, responses=_ERROR_RESPONSES
    )
    async def delete_user(
        user_id: int,
        db: AsyncSession = Depends(get_db),
        _user: User = Depends(get_current_user),
    ) -> dict:
        """Delete a user by id and return the users that remain."""
        await user_store.delete_user(db, user_id)
        return _user_list(await user_store.list_users(db))

    @app.get("/health")
    async def health() -> Dict[str, str]:
        """Health check endpoint returning the service status."""
        return {"status": "ok"}


app = create_app()
