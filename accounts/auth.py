"""Email and password authentication."""

from __future__ import annotations

import logging

from .database import Database
from .errors import InvalidCredentialsError
from .models import User
from .security import PasswordHasher

logger = logging.getLogger("accounts.auth")


class Authenticator:
    """Turn an email/password pair into a user or a single generic failure.

    Unknown emails, soft-deleted accounts and wrong passwords are all reported
    as :class:`InvalidCredentialsError` so the response cannot be used to discover
    which addresses are registered.
    """

    def __init__(self, database: Database, hasher: PasswordHasher) -> None:
        self._database = database
        self._hasher = hasher

    def authenticate(self, email: str, password: str) -> User:
        found = self._database.get_credentials_by_email(email)
        if found is None:
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()

        user, password_hash = found
        if not user.is_active or not self._hasher.verify(password_hash, password):
            logger.info("Rejected login attempt")
            raise InvalidCredentialsError()

        logger.info("User %s authenticated", user.id)
        return user


__all__ = ["Authenticator"]
