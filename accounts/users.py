"""Lifecycle operations for user accounts."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from .database import Database, current_timestamp
from .errors import EmailTakenError, NotFoundError
from .models import DEFAULT_ROLE, Role, User, UserChanges
from .security import PasswordHasher
from .validation import UniquenessGuard, validate_changes, validate_new_user, validate_role

logger = logging.getLogger("accounts.users")


class UserService:
    """Create, read, update, soft-delete and restore user records."""

    def __init__(self, database: Database, hasher: PasswordHasher) -> None:
        self._database = database
        self._hasher = hasher
        self._guard = UniquenessGuard(database)

    def create(
        self,
        name: str,
        email: str,
        password: str,
        role: Optional[str | Role] = None,
    ) -> User:
        """Validate, hash and persist a new user, returning the stored record."""

        role_value = role.value if isinstance(role, Role) else role
        validate_new_user(name, email, password, role_value)

        if self._guard.is_email_taken(email):
            raise EmailTakenError(email)

        password_hash = self._hasher.hash(password)
        now = current_timestamp()
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            role=Role(role_value) if role_value else DEFAULT_ROLE,
            created_at=now,
            updated_at=now,
        )
        self._database.insert_user(user, password_hash)
        logger.info("Created user %s with role %s", user.id, user.role.value)
        return user

    def get_by_id(self, user_id: str) -> User:
        """Return the user with ``user_id``, including soft-deleted records."""

        user = self._database.get_user(user_id)
        if user is None:
            raise NotFoundError(user_id)
        return user

    def get_by_email(self, email: str) -> User:
        user = self._database.get_user_by_email(email)
        if user is None:
            raise NotFoundError()
        return user

    def list(self) -> List[User]:
        """Return every active user. Order is not guaranteed."""

        return self._database.list_users()

    def list_by_role(self, role: str | Role) -> List[User]:
        return self._database.list_users(role=validate_role(role))

    def update(self, user_id: str, changes: UserChanges) -> User:
        """Apply the non-empty fields of ``changes`` to an existing user."""

        validate_changes(changes)
        existing = self.get_by_id(user_id)
        supplied = changes.supplied()

        email = supplied.get("email", existing.email)
        if "email" in supplied and self._guard.is_email_taken(email, exclude_id=user_id):
            raise EmailTakenError(email)

        password_hash = None
        if "password" in supplied:
            password_hash = self._hasher.hash(supplied["password"])

        name = supplied.get("name", existing.name)
        role = Role(supplied["role"]) if "role" in supplied else existing.role
        updated_at = current_timestamp()

        matched = self._database.update_user(
            user_id,
            name=name,
            email=email,
            role=role,
            updated_at=updated_at,
            password_hash=password_hash,
        )
        if not matched:
            raise NotFoundError(user_id)

        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(supplied)) or "no changes")
        return User(
            id=existing.id,
            name=name,
            email=email,
            role=role,
            created_at=existing.created_at,
            updated_at=updated_at,
            deleted_at=existing.deleted_at,
        )

    def delete(self, user_id: str) -> None:
        """Soft-delete an active user."""

        if not self._database.soft_delete_user(user_id, current_timestamp()):
            raise NotFoundError(user_id)
        logger.info("Soft-deleted user %s", user_id)

    def restore(self, user_id: str) -> None:
        """Clear the deletion mark on a user; restoring an active user is a no-op."""

        if not self._database.restore_user(user_id):
            raise NotFoundError(user_id)
        logger.info("Restored user %s", user_id)


__all__ = ["UserService"]
