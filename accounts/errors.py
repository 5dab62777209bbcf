"""Typed failures raised by the account core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


class AccountError(Exception):
    """Base class for every error raised by the account core."""


@dataclass(frozen=True)
class FieldViolation:
    """A single failed validation rule for one field."""

    field: str
    rule: str
    message: str


class ValidationError(AccountError):
    """One or more fields failed validation.

    All violations are reported together so that callers can correct a form
    in a single round trip.
    """

    def __init__(self, violations: Iterable[FieldViolation]) -> None:
        self.violations: List[FieldViolation] = list(violations)
        if not self.violations:
            raise ValueError("ValidationError requires at least one violation")
        super().__init__("; ".join(v.message for v in self.violations))

    def fields(self) -> List[str]:
        return [violation.field for violation in self.violations]


class EmailTakenError(AccountError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("email already exists")


class NotFoundError(AccountError):
    def __init__(self, user_id: str | None = None) -> None:
        self.user_id = user_id
        super().__init__("user not found")


class InvalidCredentialsError(AccountError):
    """Raised for both unknown emails and wrong passwords."""

    def __init__(self) -> None:
        super().__init__("invalid email or password")


class StoreError(AccountError):
    """The backing store failed to complete a request."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or did not answer before the deadline."""


class HashingError(AccountError):
    """The password hashing backend failed."""


__all__ = [
    "AccountError",
    "EmailTakenError",
    "FieldViolation",
    "HashingError",
    "InvalidCredentialsError",
    "NotFoundError",
    "StoreError",
    "StoreUnavailableError",
    "ValidationError",
]
