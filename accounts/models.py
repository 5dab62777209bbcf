"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Closed set of authorization roles a user may hold."""

    ADMIN = "admin"
    CLIENT = "client"


DEFAULT_ROLE = Role.CLIENT


@dataclass(frozen=True)
class User:
    """Represents a user account stored in the accounts database.

    The password hash is deliberately not part of this view; it never leaves
    the store except through :meth:`Database.get_credentials_by_email`.
    """

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_client(self) -> bool:
        return self.role is Role.CLIENT


@dataclass(frozen=True)
class UserChanges:
    """Partial update payload.

    ``None`` and the empty string both mean "leave the field unchanged", so an
    update can never blank out a name or email.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None

    def supplied(self) -> dict[str, str]:
        """Return only the fields that carry a value."""

        values = {
            "name": self.name,
            "email": self.email,
            "password": self.password,
            "role": self.role,
        }
        return {key: value for key, value in values.items() if value}


@dataclass(frozen=True)
class UserStats:
    total: int
    admins: int
    clients: int


__all__ = ["DEFAULT_ROLE", "Role", "User", "UserChanges", "UserStats"]
