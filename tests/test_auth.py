from __future__ import annotations

from pathlib import Path

import pytest

from accounts.auth import Authenticator
from accounts.database import Database
from accounts.errors import InvalidCredentialsError
from accounts.security import PasswordHasher
from accounts.users import UserService


EMAIL = "user@acme.com"
PASSWORD = "super-secret-password"


@pytest.fixture()
def setup(tmp_path: Path) -> tuple[UserService, Authenticator]:
    database = Database(tmp_path / "auth.sqlite3")
    database.initialize()
    hasher = PasswordHasher(rounds=4)
    return UserService(database, hasher), Authenticator(database, hasher)


def test_authenticate_with_valid_credentials(setup: tuple[UserService, Authenticator]) -> None:
    users, authenticator = setup
    user = users.create("Test User", EMAIL, PASSWORD)

    assert authenticator.authenticate(EMAIL, PASSWORD) == user


def test_wrong_password_and_unknown_email_are_indistinguishable(
    setup: tuple[UserService, Authenticator],
) -> None:
    users, authenticator = setup
    users.create("Test User", EMAIL, PASSWORD)

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        authenticator.authenticate(EMAIL, "not-the-password")
    with pytest.raises(InvalidCredentialsError) as unknown_email:
        authenticator.authenticate("nobody@acme.com", PASSWORD)

    assert type(wrong_password.value) is type(unknown_email.value)
    assert str(wrong_password.value) == str(unknown_email.value) == "invalid email or password"


def test_soft_deleted_user_cannot_authenticate(setup: tuple[UserService, Authenticator]) -> None:
    users, authenticator = setup
    user = users.create("Test User", EMAIL, PASSWORD)
    users.delete(user.id)

    with pytest.raises(InvalidCredentialsError):
        authenticator.authenticate(EMAIL, PASSWORD)

    users.restore(user.id)
    assert authenticator.authenticate(EMAIL, PASSWORD).id == user.id


def test_email_match_is_case_sensitive(setup: tuple[UserService, Authenticator]) -> None:
    users, authenticator = setup
    users.create("Test User", EMAIL, PASSWORD)

    with pytest.raises(InvalidCredentialsError):
        authenticator.authenticate(EMAIL.upper(), PASSWORD)
