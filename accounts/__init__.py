"""User account lifecycle, authentication and the HTTP API around them."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path
from .errors import (
    AccountError,
    EmailTakenError,
    HashingError,
    InvalidCredentialsError,
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)
from .models import Role, User, UserChanges


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "AccountError",
    "Database",
    "EmailTakenError",
    "HashingError",
    "InvalidCredentialsError",
    "NotFoundError",
    "Role",
    "StoreError",
    "StoreUnavailableError",
    "User",
    "UserChanges",
    "ValidationError",
    "create_app",
    "resolve_database_path",
]
