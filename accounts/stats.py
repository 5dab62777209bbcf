"""Read-only aggregate counts over active users."""

from __future__ import annotations

from .database import Database
from .models import Role, UserStats
from .validation import validate_role


class UserStatistics:
    def __init__(self, database: Database) -> None:
        self._database = database

    def count(self) -> int:
        return self._database.count_users()

    def count_by_role(self, role: str | Role) -> int:
        return self._database.count_users(role=validate_role(role))

    def summary(self) -> UserStats:
        # Three independent reads; totals may drift under concurrent writes.
        return UserStats(
            total=self.count(),
            admins=self.count_by_role(Role.ADMIN),
            clients=self.count_by_role(Role.CLIENT),
        )


__all__ = ["UserStatistics"]
