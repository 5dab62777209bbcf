"""End-to-end tests for the accounts service HTTP API."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from accounts.config import Settings
from accounts.database import Database
from accounts.errors import StoreUnavailableError
from accounts.security import PasswordHasher
from accounts.service import create_app


class AccountsServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tempdir.name) / "accounts.sqlite3"
        self.settings = Settings(database_path=db_path, environment="test", bcrypt_rounds=4)
        self.database = Database(db_path)
        self.app = create_app(
            settings=self.settings,
            database=self.database,
            hasher=PasswordHasher(rounds=4),
        )
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self._tempdir.cleanup()

    def _register(self, **overrides: str) -> dict:
        payload = {"name": "Ann", "email": "ann@x.com", "password": "secret1"}
        payload.update(overrides)
        response = self.client.post("/api/auth/register", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_healthcheck(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"success": True, "message": "Server is running", "data": {"status": "healthy"}},
        )

    def test_register_returns_user_without_password(self) -> None:
        user = self._register()
        self.assertEqual(user["role"], "client")
        self.assertEqual(user["email"], "ann@x.com")
        self.assertIsNone(user["deleted_at"])
        self.assertNotIn("password", user)
        self.assertNotIn("password_hash", user)

    def test_register_reports_every_violation(self) -> None:
        response = self.client.post(
            "/api/auth/register",
            json={"name": "A", "email": "nope", "password": "1", "role": "owner"},
        )
        self.assertEqual(response.status_code, 400, response.text)
        payload = response.json()
        self.assertFalse(payload["success"])
        fields = {error["field"] for error in payload["errors"]}
        self.assertEqual(fields, {"name", "email", "password", "role"})

    def test_register_duplicate_email_conflicts(self) -> None:
        self._register()
        response = self.client.post(
            "/api/auth/register",
            json={"name": "Ann Two", "email": "ann@x.com", "password": "secret2"},
        )
        self.assertEqual(response.status_code, 409, response.text)
        self.assertEqual(response.json()["error"], "email already exists")

    def test_malformed_body_is_rejected(self) -> None:
        response = self.client.post("/api/auth/register", json={"name": ["not", "a", "string"]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request body")

    def test_login_success_and_failure(self) -> None:
        self._register()

        ok = self.client.post("/api/auth/login", json={"email": "ann@x.com", "password": "secret1"})
        self.assertEqual(ok.status_code, 200, ok.text)
        self.assertEqual(ok.json()["data"]["email"], "ann@x.com")

        wrong = self.client.post("/api/auth/login", json={"email": "ann@x.com", "password": "wrong"})
        unknown = self.client.post("/api/auth/login", json={"email": "bob@x.com", "password": "secret1"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())

    def test_user_lifecycle(self) -> None:
        user = self._register()
        user_id = user["id"]

        listing = self.client.get("/api/users")
        self.assertEqual([u["id"] for u in listing.json()["data"]], [user_id])

        updated = self.client.patch(f"/api/users/{user_id}", json={"name": "", "role": "admin"})
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["data"]["name"], "Ann")
        self.assertEqual(updated.json()["data"]["role"], "admin")

        replaced = self.client.put(f"/api/users/{user_id}", json={"name": "Annabel"})
        self.assertEqual(replaced.json()["data"]["name"], "Annabel")

        deleted = self.client.delete(f"/api/users/{user_id}")
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json(), {"success": True, "message": "User deleted successfully"})
        self.assertEqual(self.client.get("/api/users").json()["data"], [])

        fetched = self.client.get(f"/api/users/{user_id}")
        self.assertEqual(fetched.status_code, 200)
        self.assertIsNotNone(fetched.json()["data"]["deleted_at"])

        restored = self.client.post(f"/api/users/{user_id}/restore")
        self.assertEqual(restored.status_code, 200)
        self.assertEqual(len(self.client.get("/api/users").json()["data"]), 1)

    def test_unknown_user_returns_404(self) -> None:
        for response in (
            self.client.get("/api/users/missing"),
            self.client.put("/api/users/missing", json={"name": "Someone"}),
            self.client.delete("/api/users/missing"),
            self.client.post("/api/users/missing/restore"),
        ):
            self.assertEqual(response.status_code, 404, response.text)
            self.assertEqual(response.json()["error"], "user not found")

    def test_list_by_role_and_stats(self) -> None:
        self._register(email="admin@x.com", role="admin")
        self._register(email="client@x.com")

        admins = self.client.get("/api/users/role/admin")
        self.assertEqual([u["email"] for u in admins.json()["data"]], ["admin@x.com"])

        invalid = self.client.get("/api/users/role/owner")
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["error"], "Invalid role. Use 'admin' or 'client'")

        stats = self.client.get("/api/users/stats")
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()["data"], {"total": 2, "admins": 1, "clients": 1})

    def test_store_outage_surfaces_as_503(self) -> None:
        with mock.patch.object(
            self.database, "list_users", side_effect=StoreUnavailableError("database is locked")
        ):
            response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()["success"])

    def test_cors_allows_configured_origin(self) -> None:
        response = self.client.options(
            "/api/users",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "http://localhost:3000")

    def test_docs_disabled_in_production(self) -> None:
        settings = Settings(
            database_path=self.settings.database_path,
            environment="production",
            bcrypt_rounds=4,
        )
        app = create_app(settings=settings, database=self.database, hasher=PasswordHasher(rounds=4))
        with TestClient(app) as client:
            self.assertEqual(client.get("/docs").status_code, 404)
        self.assertEqual(self.client.get("/docs").status_code, 200)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
