"""Field validation and email uniqueness checks applied before any write.

Rules are declared once in :data:`USER_RULES` and evaluated field by field.
Every violation is collected before a single :class:`ValidationError` is
raised, so callers learn about all problems with a payload at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from email_validator import EmailNotValidError, validate_email

from .database import Database
from .errors import FieldViolation, ValidationError
from .models import Role, UserChanges


@dataclass(frozen=True)
class Rule:
    """A named predicate over a single non-empty field value."""

    name: str
    check: Callable[[str], bool]
    message: str

    def violation(self, field: str) -> FieldViolation:
        return FieldViolation(field=field, rule=self.name, message=self.message.format(field=field))


def min_length(limit: int) -> Rule:
    return Rule("min", lambda value: len(value) >= limit, "{field} must be at least %d characters" % limit)


def max_length(limit: int) -> Rule:
    return Rule("max", lambda value: len(value) <= limit, "{field} must be at most %d characters" % limit)


def _is_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def email_shape() -> Rule:
    return Rule("email", _is_email, "{field} must be a valid email")


def one_of(*choices: str) -> Rule:
    allowed = frozenset(choices)
    return Rule("oneof", lambda value: value in allowed, "{field} must be one of: " + ", ".join(choices))


@dataclass(frozen=True)
class FieldSpec:
    required: bool
    rules: Tuple[Rule, ...]


USER_RULES: Dict[str, FieldSpec] = {
    "name": FieldSpec(required=True, rules=(min_length(2), max_length(100))),
    "email": FieldSpec(required=True, rules=(max_length(100), email_shape())),
    "password": FieldSpec(required=True, rules=(min_length(6),)),
    "role": FieldSpec(required=False, rules=(one_of(*(role.value for role in Role)),)),
}


def _required(field: str) -> FieldViolation:
    return FieldViolation(field=field, rule="required", message=f"{field} is required")


def collect_violations(
    values: Mapping[str, Optional[str]],
    *,
    enforce_required: bool = True,
    rules: Mapping[str, FieldSpec] = USER_RULES,
) -> List[FieldViolation]:
    """Evaluate ``values`` against ``rules`` and return every violation found."""

    violations: List[FieldViolation] = []
    for field, spec in rules.items():
        value = values.get(field)
        if not value:
            if enforce_required and spec.required:
                violations.append(_required(field))
            continue
        for rule in spec.rules:
            if not rule.check(value):
                violations.append(rule.violation(field))
    return violations


def validate_new_user(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    role: Optional[str] = None,
) -> None:
    violations = collect_violations(
        {"name": name, "email": email, "password": password, "role": role}
    )
    if violations:
        raise ValidationError(violations)


def validate_changes(changes: UserChanges) -> None:
    """Validate only the fields an update actually supplies."""

    violations = collect_violations(changes.supplied(), enforce_required=False)
    if violations:
        raise ValidationError(violations)


def validate_role(role: str | Role) -> Role:
    """Return ``role`` as a :class:`Role`, rejecting anything outside the enum."""

    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        raise ValidationError(
            [FieldViolation(field="role", rule="oneof", message="Invalid role. Use 'admin' or 'client'")]
        ) from None


class UniquenessGuard:
    """Check-then-act email uniqueness over active users.

    This is an early exit only: the partial unique index on ``users.email``
    is what finally rejects a duplicate that slips past a concurrent check.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    def is_email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        return self._database.email_exists(email, exclude_id=exclude_id)


__all__ = [
    "USER_RULES",
    "FieldSpec",
    "Rule",
    "UniquenessGuard",
    "collect_violations",
    "validate_changes",
    "validate_new_user",
    "validate_role",
]
