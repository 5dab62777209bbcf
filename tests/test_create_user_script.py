from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

from accounts.database import Database

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "create_user.py"


@pytest.fixture()
def create_user_script(monkeypatch: pytest.MonkeyPatch):
    spec = importlib.util.spec_from_file_location("create_user_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    monkeypatch.setattr(module.getpass, "getpass", lambda prompt="": "secret1")
    for name in ("ACCOUNTS_CONFIG", "ACCOUNTS_DB_PATH", "ACCOUNTS_DB_TIMEOUT", "ACCOUNTS_BCRYPT_ROUNDS"):
        monkeypatch.delenv(name, raising=False)
    return module


def test_script_honours_yaml_settings(
    create_user_script, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "accounts.yaml"
    config_path.write_text(
        "database_path: users.sqlite3\ndatabase_timeout: 1.5\nbcrypt_rounds: 4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ACCOUNTS_CONFIG", str(config_path))

    args = create_user_script.parse_args(["Ann", "ann@acme.com"])
    settings = create_user_script.load_script_settings(args)
    assert settings.database_path == (tmp_path / "users.sqlite3").resolve()
    assert settings.database_timeout == 1.5

    assert create_user_script.main(["Ann", "ann@acme.com", "--role", "admin"]) == 0

    found = Database(tmp_path / "users.sqlite3").get_credentials_by_email("ann@acme.com")
    assert found is not None
    user, password_hash = found
    assert user.role.value == "admin"
    assert password_hash.startswith("$2b$04$")


def test_db_flag_overrides_configured_path(
    create_user_script, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("ACCOUNTS_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("ACCOUNTS_DB_PATH", str(tmp_path / "from-env.sqlite3"))
    monkeypatch.setenv("ACCOUNTS_BCRYPT_ROUNDS", "5")
    target = tmp_path / "from-flag.sqlite3"

    assert create_user_script.main(["Bob", "bob@acme.com", "--db", str(target)]) == 0

    found = Database(target).get_credentials_by_email("bob@acme.com")
    assert found is not None
    assert found[1].startswith("$2b$05$")
    assert not (tmp_path / "from-env.sqlite3").exists()


def test_duplicate_email_reports_error(
    create_user_script, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("ACCOUNTS_BCRYPT_ROUNDS", "4")
    target = tmp_path / "dup.sqlite3"
    assert create_user_script.main(["Cat", "cat@acme.com", "--db", str(target)]) == 0
    assert create_user_script.main(["Cat", "cat@acme.com", "--db", str(target)]) == 1
