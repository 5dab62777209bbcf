"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .errors import EmailTakenError, StoreError, StoreUnavailableError
from .models import Role, User

logger = logging.getLogger("accounts.database")

DEFAULT_TIMEOUT = 5.0

_USER_COLUMNS = "id, name, email, role, created_at, updated_at, deleted_at"


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the accounts database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "accounts.sqlite3").resolve(strict=False)


def current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _is_email_conflict(exc: sqlite3.IntegrityError) -> bool:
    return "users.email" in str(exc)


class Database:
    """Simple wrapper around SQLite for persisting user accounts.

    A fresh connection is opened for every call so that concurrent requests
    never share connection state. ``timeout`` bounds how long a call waits on
    a locked database before failing with :class:`StoreUnavailableError`.
    Callers that need a tighter deadline for particular calls use
    :meth:`with_timeout`.
    """

    def __init__(self, path: Path, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise ValueError("Database timeout must be positive")
        _ensure_directory(path)
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    @property
    def timeout(self) -> float:
        return self._timeout

    def with_timeout(self, timeout: float) -> "Database":
        """Return a handle to the same database whose calls wait at most ``timeout`` seconds."""

        return Database(self._path, timeout=timeout)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, translating driver errors."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.error("Unable to open database at %s: %s", self._path, exc)
            raise StoreUnavailableError(f"Unable to open database: {exc}") from exc

        try:
            with conn:
                yield conn
        except sqlite3.OperationalError as exc:
            logger.error("Database operation failed: %s", exc)
            raise StoreUnavailableError(str(exc)) from exc
        except sqlite3.Error as exc:
            logger.error("Database error: %s", exc)
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._session() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'client'
                        CHECK (role IN ('admin', 'client')),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    deleted_at TEXT
                );

                CREATE UNIQUE INDEX IF NOT EXISTS idx_users_active_email
                    ON users(email) WHERE deleted_at IS NULL;
                CREATE INDEX IF NOT EXISTS idx_users_deleted_at ON users(deleted_at);
                """
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def insert_user(self, user: User, password_hash: str) -> None:
        """Persist a freshly created user."""

        with self._session() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (
                        id, name, email, password_hash, role, created_at, updated_at, deleted_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, NULL)
                    """,
                    (
                        user.id,
                        user.name,
                        user.email,
                        password_hash,
                        user.role.value,
                        _serialize_datetime(user.created_at),
                        _serialize_datetime(user.updated_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if _is_email_conflict(exc):
                    raise EmailTakenError(user.email) from exc
                raise

    def update_user(
        self,
        user_id: str,
        *,
        name: str,
        email: str,
        role: Role,
        updated_at: datetime,
        password_hash: Optional[str] = None,
    ) -> bool:
        """Replace the mutable columns of a user. Returns ``False`` if no row matched."""

        assignments = ["name = ?", "email = ?", "role = ?", "updated_at = ?"]
        values: List[object] = [name, email, role.value, _serialize_datetime(updated_at)]
        if password_hash is not None:
            assignments.append("password_hash = ?")
            values.append(password_hash)
        values.append(user_id)

        with self._session() as conn:
            try:
                cursor = conn.execute(
                    f"UPDATE users SET {', '.join(assignments)} WHERE id = ?",
                    values,
                )
            except sqlite3.IntegrityError as exc:
                if _is_email_conflict(exc):
                    raise EmailTakenError(email) from exc
                raise
            return cursor.rowcount > 0

    def soft_delete_user(self, user_id: str, deleted_at: datetime) -> bool:
        """Mark an active user as deleted. Returns ``False`` if no active row matched."""

        with self._session() as conn:
            cursor = conn.execute(
                "UPDATE users SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                (_serialize_datetime(deleted_at), user_id),
            )
            return cursor.rowcount > 0

    def restore_user(self, user_id: str) -> bool:
        """Clear the deletion mark, whether or not one is set."""

        with self._session() as conn:
            try:
                cursor = conn.execute(
                    "UPDATE users SET deleted_at = NULL WHERE id = ?",
                    (user_id,),
                )
            except sqlite3.IntegrityError as exc:
                if _is_email_conflict(exc):
                    row = conn.execute(
                        "SELECT email FROM users WHERE id = ?", (user_id,)
                    ).fetchone()
                    raise EmailTakenError(str(row["email"]) if row else "") from exc
                raise
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        found = self.get_credentials_by_email(email)
        if found is None:
            return None
        return found[0]

    def get_credentials_by_email(self, email: str) -> Optional[Tuple[User, str]]:
        """Return the user for ``email`` together with the stored password hash.

        An active row is preferred over soft-deleted rows sharing the address.
        """

        with self._session() as conn:
            row = conn.execute(
                f"""
                SELECT {_USER_COLUMNS}, password_hash
                  FROM users
                 WHERE email = ?
                 ORDER BY deleted_at IS NOT NULL, deleted_at DESC
                 LIMIT 1
                """,
                (email,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row), str(row["password_hash"])

    def list_users(self, role: Optional[Role] = None) -> List[User]:
        """Return active users, optionally restricted to ``role``."""

        query = f"SELECT {_USER_COLUMNS} FROM users WHERE deleted_at IS NULL"
        params: Tuple[object, ...] = ()
        if role is not None:
            query += " AND role = ?"
            params = (role.value,)
        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_user(row) for row in rows]

    def email_exists(self, email: str, exclude_id: Optional[str] = None) -> bool:
        """Return ``True`` if an active user other than ``exclude_id`` owns ``email``."""

        query = "SELECT 1 FROM users WHERE email = ? AND deleted_at IS NULL"
        params: Tuple[object, ...] = (email,)
        if exclude_id is not None:
            query += " AND id != ?"
            params = (email, exclude_id)
        with self._session() as conn:
            row = conn.execute(query + " LIMIT 1", params).fetchone()
        return row is not None

    def count_users(self, role: Optional[Role] = None) -> int:
        query = "SELECT COUNT(*) FROM users WHERE deleted_at IS NULL"
        params: Tuple[object, ...] = ()
        if role is not None:
            query += " AND role = ?"
            params = (role.value,)
        with self._session() as conn:
            (count,) = conn.execute(query, params).fetchone()
        return int(count)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        deleted_at = row["deleted_at"]
        return User(
            id=str(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            role=Role(row["role"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
            deleted_at=_parse_datetime(str(deleted_at)) if deleted_at else None,
        )


__all__ = ["Database", "current_timestamp", "resolve_database_path"]
