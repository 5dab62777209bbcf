"""Command-line interface for the accounts service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Run `pip install -e .` to install dependencies."
    ) from exc

from accounts.config import Settings, load_settings, resolve_config_path, with_database_path
from accounts.database import Database
from accounts.errors import AccountError
from accounts.security import PasswordHasher
from accounts.stats import UserStatistics
from accounts.users import UserService

logger = logging.getLogger("accounts.main")

_DEFAULT_SERVICE_URL = "http://localhost:8000"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Accounts service utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: ACCOUNTS_CONFIG or config/accounts.yaml)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Override the SQLite database path",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the accounts database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP accounts service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: 8000)",
    )

    admin_parser = subparsers.add_parser(
        "admin", help="Launch the interactive administration console"
    )
    admin_parser.add_argument(
        "--service-url",
        default=None,
        help=f"Base URL of a running accounts service (default: {_DEFAULT_SERVICE_URL})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if not any(arg in known_commands for arg in args_list):
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = _insert_default_command(args_list)

    return parser.parse_args(args_list)


def _insert_default_command(args_list: list[str]) -> list[str]:
    """Place ``serve`` after any global options so serve flags still parse."""

    global_flags = {"--config", "--db"}
    index = 0
    while index < len(args_list) and args_list[index].split("=", 1)[0] in global_flags:
        index += 1 if "=" in args_list[index] else 2
    return [*args_list[:index], "serve", *args_list[index:]]


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = resolve_config_path(args.config or os.getenv("ACCOUNTS_CONFIG"))
    settings = load_settings(config_path)
    if args.db_path:
        settings = with_database_path(settings, Path(args.db_path).expanduser().resolve(strict=False))
    return settings


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path, timeout=settings.database_timeout)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, database: Database, host: str | None, port: int | None) -> None:
    from accounts.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting accounts API on http://%s:%s (%s)", bind_host, bind_port, settings.environment)

    app = create_app(settings=settings, database=database)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level=settings.log_level.lower(),
    )


def _run_admin_cli(
    users: UserService,
    statistics: UserStatistics,
    *,
    default_service_url: str | None = None,
) -> None:
    """Provide an interactive management console for administrators."""

    service_url = default_service_url or _DEFAULT_SERVICE_URL

    print("Accounts Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List active users")
            print("  2) Add a new user")
            print("  3) Delete a user")
            print("  4) Restore a user")
            print("  5) Show user statistics")
            print("  6) Check service health")
            print("  7) Exit")

            choice = input("Enter choice [1-7]: ").strip()

            if choice == "1":
                _list_users(users)
            elif choice == "2":
                _add_user(users)
            elif choice == "3":
                _delete_user(users)
            elif choice == "4":
                _restore_user(users)
            elif choice == "5":
                _show_stats(statistics)
            elif choice == "6":
                _check_health(service_url)
            elif choice == "7":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(users: UserService) -> None:
    listing = users.list()
    if not listing:
        print("No users are currently registered.")
        return

    print(f"{len(listing)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<24}  {'Email':<32}  {'Role':<6}  Created")
    print("-" * 120)
    for user in listing:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:<36}  {user.name:<24}  {user.email:<32}  {user.role.value:<6}  {created}")


def _add_user(users: UserService) -> None:
    print("\nCreate a new user (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip()
    role = input("Role [client/admin] (default client): ").strip() or None

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return

    try:
        user = users.create(name, email, password, role)
    except AccountError as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user {user.id}: {user.name} <{user.email}> ({user.role.value})")


def _delete_user(users: UserService) -> None:
    user_id = input("User ID to delete: ").strip()
    if not user_id:
        return
    try:
        users.delete(user_id)
    except AccountError as exc:
        print(f"Failed to delete user: {exc}")
        return
    print(f"User {user_id} deleted.")


def _restore_user(users: UserService) -> None:
    user_id = input("User ID to restore: ").strip()
    if not user_id:
        return
    try:
        users.restore(user_id)
    except AccountError as exc:
        print(f"Failed to restore user: {exc}")
        return
    print(f"User {user_id} restored.")


def _show_stats(statistics: UserStatistics) -> None:
    summary = statistics.summary()
    print(f"Total active users: {summary.total}")
    print(f"  admins:  {summary.admins}")
    print(f"  clients: {summary.clients}")


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password (min 6 characters): ")
        if len(password) < 6:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _check_health(base_url: str) -> None:
    endpoint = base_url.rstrip("/") + "/health"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact accounts service: {exc}")
        return

    if response.status_code != 200:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.")
        return

    status = (payload.get("data") or {}).get("status", "unknown")
    print(f"{endpoint}: {status}")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = _load_settings(args)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    database = _initialise_database(settings)

    if args.command == "serve":
        _serve(
            settings=settings,
            database=database,
            host=args.host,
            port=args.port,
        )
    elif args.command == "admin":
        hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
        _run_admin_cli(
            UserService(database, hasher),
            UserStatistics(database),
            default_service_url=args.service_url,
        )
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
