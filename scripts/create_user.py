import argparse
import getpass
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from accounts.config import Settings, load_settings, resolve_config_path, with_database_path
from accounts.database import Database
from accounts.errors import AccountError
from accounts.security import PasswordHasher
from accounts.users import UserService


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an accounts user")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument(
        "--role",
        choices=("admin", "client"),
        default=None,
        help="Role for the new account (default: client)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: ACCOUNTS_CONFIG or config/accounts.yaml)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (overrides the configured database_path)",
    )
    return parser.parse_args(argv)


def load_script_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(resolve_config_path(args.config or os.getenv("ACCOUNTS_CONFIG")))
    if args.db_path:
        settings = with_database_path(settings, Path(args.db_path).expanduser().resolve(strict=False))
    return settings


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < 6:
            print("Password must be at least 6 characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_script_settings(args)
    password = prompt_for_password()

    database = Database(settings.database_path, timeout=settings.database_timeout)
    database.initialize()

    service = UserService(database, PasswordHasher(rounds=settings.bcrypt_rounds))
    try:
        user = service.create(args.name.strip(), args.email.strip(), password, args.role)
    except AccountError as exc:  # validation, duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.name} <{user.email}> ({user.role.value})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
