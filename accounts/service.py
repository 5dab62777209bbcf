"""HTTP API for managing user accounts."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .auth import Authenticator
from .config import Settings, load_settings
from .database import Database
from .errors import (
    EmailTakenError,
    HashingError,
    InvalidCredentialsError,
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)
from .models import User, UserChanges
from .security import PasswordHasher
from .stats import UserStatistics
from .users import UserService

logger = logging.getLogger("accounts.service")

_CORS_MAX_AGE = 12 * 60 * 60


class CreateUserRequest(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    role: Optional[str] = None


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class StatsResponse(BaseModel):
    total: int
    admins: int
    clients: int


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.value,
        created_at=user.created_at,
        updated_at=user.updated_at,
        deleted_at=user.deleted_at,
    )


def _success(message: str, data: Any = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=status_code, content=body)


def _failure(status_code: int, error: str, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate core errors into enveloped JSON responses."""

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(ValidationError)
    async def validation_failed(request: Request, exc: ValidationError) -> JSONResponse:
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            str(exc),
            errors=[
                {"field": v.field, "rule": v.rule, "message": v.message}
                for v in exc.violations
            ],
        )

    @app.exception_handler(EmailTakenError)
    async def email_taken(request: Request, exc: EmailTakenError) -> JSONResponse:
        return _failure(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _failure(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials(request: Request, exc: InvalidCredentialsError) -> JSONResponse:
        return _failure(status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(StoreError)
    async def store_failed(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure while handling %s %s: %s", request.method, request.url.path, exc)
        if isinstance(exc, StoreUnavailableError):
            return _failure(status.HTTP_503_SERVICE_UNAVAILABLE, "Database unavailable")
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error")

    @app.exception_handler(HashingError)
    async def hashing_failed(request: Request, exc: HashingError) -> JSONResponse:
        logger.error("Hashing failure while handling %s %s: %s", request.method, request.url.path, exc)
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to process credentials")


def register_api_routes(
    app: FastAPI,
    users: UserService,
    authenticator: Authenticator,
    statistics: UserStatistics,
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    @app.get("/health")
    def healthcheck() -> JSONResponse:
        return _success("Server is running", {"status": "healthy"})

    @app.post("/api/auth/login")
    def login(request: LoginRequest) -> JSONResponse:
        user = authenticator.authenticate(request.email, request.password)
        return _success("Login successful", _user_to_response(user))

    @app.post("/api/auth/register")
    def register(request: CreateUserRequest) -> JSONResponse:
        user = users.create(request.name, request.email, request.password, request.role)
        return _success(
            "User created successfully",
            _user_to_response(user),
            status_code=status.HTTP_201_CREATED,
        )

    @app.get("/api/users")
    def list_users() -> JSONResponse:
        listing: List[UserResponse] = [_user_to_response(user) for user in users.list()]
        return _success("Users retrieved successfully", listing)

    @app.get("/api/users/stats")
    def user_stats() -> JSONResponse:
        summary = statistics.summary()
        payload = StatsResponse(total=summary.total, admins=summary.admins, clients=summary.clients)
        return _success("User statistics retrieved successfully", payload)

    @app.get("/api/users/role/{role}")
    def list_users_by_role(role: str) -> JSONResponse:
        listing = [_user_to_response(user) for user in users.list_by_role(role)]
        return _success("Users retrieved successfully", listing)

    @app.get("/api/users/{user_id}")
    def get_user(user_id: str) -> JSONResponse:
        return _success("User retrieved successfully", _user_to_response(users.get_by_id(user_id)))

    @app.api_route("/api/users/{user_id}", methods=["PUT", "PATCH"])
    def update_user(user_id: str, request: UpdateUserRequest) -> JSONResponse:
        changes = UserChanges(
            name=request.name,
            email=request.email,
            password=request.password,
            role=request.role,
        )
        user = users.update(user_id, changes)
        return _success("User updated successfully", _user_to_response(user))

    @app.delete("/api/users/{user_id}")
    def delete_user(user_id: str) -> JSONResponse:
        users.delete(user_id)
        return _success("User deleted successfully")

    @app.post("/api/users/{user_id}/restore")
    def restore_user(user_id: str) -> JSONResponse:
        users.restore(user_id)
        return _success("User restored successfully")


def create_app(
    *,
    settings: Settings | None = None,
    database: Database | None = None,
    hasher: PasswordHasher | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the accounts service."""

    config = settings or load_settings()
    db = database or Database(config.database_path, timeout=config.database_timeout)
    db.initialize()
    password_hasher = hasher or PasswordHasher(rounds=config.bcrypt_rounds)

    users = UserService(db, password_hasher)
    authenticator = Authenticator(db, password_hasher)
    statistics = UserStatistics(db)

    docs_kwargs: Dict[str, Any] = {}
    if config.is_production:
        docs_kwargs = {"docs_url": None, "redoc_url": None, "openapi_url": None}

    app = FastAPI(
        title="Accounts API",
        version="0.1.0",
        description="User account lifecycle and authentication.",
        **docs_kwargs,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization", "X-Requested-With"],
        expose_headers=["Content-Length"],
        allow_credentials=True,
        max_age=_CORS_MAX_AGE,
    )

    app.state.settings = config
    app.state.database = db
    app.state.users = users

    register_exception_handlers(app)
    register_api_routes(app, users, authenticator, statistics)

    logger.info("Accounts API ready (environment=%s, database=%s)", config.environment, db.path)
    return app


__all__ = ["create_app", "register_api_routes", "register_exception_handlers"]
