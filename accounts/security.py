"""Password hashing helpers for user credentials."""
from __future__ import annotations

import logging

from passlib.context import CryptContext

from .errors import HashingError

logger = logging.getLogger("accounts.security")

DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31


class PasswordHasher:
    """Salted, adaptive-cost password hashing backed by bcrypt."""

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}"
            )
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return a salted digest for ``plaintext``."""

        try:
            return self._context.hash(plaintext)
        except (ValueError, TypeError, RuntimeError) as exc:
            logger.error("Password hashing failed: %s", exc)
            raise HashingError("failed to hash password") from exc

    def verify(self, hashed: str, plaintext: str) -> bool:
        """Return ``True`` if ``plaintext`` matches the stored digest."""

        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except ValueError:
            # Unknown or malformed hash formats never match.
            return False


__all__ = ["DEFAULT_BCRYPT_ROUNDS", "PasswordHasher"]
