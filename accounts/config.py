"""Configuration management for the accounts service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .database import DEFAULT_TIMEOUT, resolve_database_path
from .security import DEFAULT_BCRYPT_ROUNDS

DEFAULT_CORS_ORIGINS: Tuple[str, ...] = (
    "http://localhost:3000",
    "http://localhost:3001",
)
_ENVIRONMENTS = {"development", "production", "test"}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _split_origins(raw: object) -> Tuple[str, ...]:
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        raise ValueError("cors_origins must be a list or a comma-separated string")
    return tuple(item.strip() for item in items if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the HTTP service and its store."""

    database_path: Path
    host: str = "0.0.0.0"
    port: int = 8000
    environment: str = "development"
    database_timeout: float = DEFAULT_TIMEOUT
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""

        raw_db_path = data.get("database_path")
        if raw_db_path:
            candidate = Path(str(raw_db_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        settings = Settings(
            database_path=database_path,
            host=str(data.get("host", "0.0.0.0")),
            port=int(data.get("port", 8000)),  # type: ignore[arg-type]
            environment=str(data.get("environment", "development")).strip().lower(),
            database_timeout=float(data.get("database_timeout", DEFAULT_TIMEOUT)),  # type: ignore[arg-type]
            bcrypt_rounds=int(data.get("bcrypt_rounds", DEFAULT_BCRYPT_ROUNDS)),  # type: ignore[arg-type]
            cors_origins=_split_origins(data.get("cors_origins", DEFAULT_CORS_ORIGINS)),
            log_level=str(data.get("log_level", "INFO")).strip().upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.environment not in _ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {', '.join(sorted(_ENVIRONMENTS))}, got {self.environment!r}"
            )
        if self.database_timeout <= 0:
            raise ValueError("database_timeout must be positive")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {self.log_level!r}")


_ENV_OVERRIDES: Dict[str, str] = {
    "HOST": "host",
    "PORT": "port",
    "ENVIRONMENT": "environment",
    "ACCOUNTS_DB_PATH": "database_path",
    "ACCOUNTS_DB_TIMEOUT": "database_timeout",
    "ACCOUNTS_BCRYPT_ROUNDS": "bcrypt_rounds",
    "ACCOUNTS_CORS_ORIGINS": "cors_origins",
    "ACCOUNTS_LOG_LEVEL": "log_level",
}


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ
    raw: Dict[str, object] = {}
    base_path: Path | None = None

    if config_path is not None and config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")
        raw.update(loaded)
        base_path = config_path.parent

    for env_name, key in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value:
            raw[key] = value

    return Settings.from_dict(raw, base_path=base_path)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "accounts.yaml").resolve(strict=False)


def with_database_path(settings: Settings, path: Path) -> Settings:
    return replace(settings, database_path=path)


__all__ = ["Settings", "load_settings", "resolve_config_path", "with_database_path"]
