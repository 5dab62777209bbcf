"""Regression tests for importing the data layer without the web stack."""

from __future__ import annotations

import importlib
import sys
import types
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class CLIImportTests(unittest.TestCase):
    def tearDown(self) -> None:
        self._clear_accounts_modules()

    @staticmethod
    def _clear_accounts_modules() -> None:
        for name in [m for m in list(sys.modules.keys()) if m == "accounts" or m.startswith("accounts.")]:
            sys.modules.pop(name, None)

    def test_import_database_without_fastapi(self) -> None:
        """Importing accounts.database must not pull in the HTTP layer."""

        self._clear_accounts_modules()

        fastapi_module: types.ModuleType | None = sys.modules.pop("fastapi", None)
        sys.modules["fastapi"] = None  # type: ignore[assignment]
        try:
            database_module = importlib.import_module("accounts.database")
            self.assertTrue(hasattr(database_module, "Database"))

            package = sys.modules.get("accounts")
            self.assertIsNotNone(package)
            self.assertTrue(hasattr(package, "Database"))
            self.assertTrue(hasattr(package, "create_app"))
        finally:
            sys.modules.pop("fastapi", None)
            if fastapi_module is not None:
                sys.modules["fastapi"] = fastapi_module


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
