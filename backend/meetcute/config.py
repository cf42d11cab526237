"""Application configuration and the recognized environment variables."""

import secrets
from dataclasses import dataclass
from typing import Callable

from pydantic import model_validator
from pydantic_settings import BaseSettings

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "change-me", "secret", ""}

SENSITIVE_MARKERS = ("PASSWORD", "SECRET", "KEY", "TOKEN")
MASK = "********"


class Settings(BaseSettings):
    """Settings loaded from the process environment and ``.env``."""

    node_env: str = "development"
    port: int = 5000
    jwt_secret: str = ""
    frontend_url: str = "http://localhost:5173"

    # Database (DATABASE_URL wins over the discrete fields when set)
    database_url: str | None = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "meetcute"
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_admin_database: str = "postgres"
    db_connect_timeout: int = 10
    db_connect_attempts: int = 1  # 1 = no retry

    # External tools driven by the bootstrap
    migrate_command: str = "alembic upgrade head"
    seed_command: str = "python scripts/seed.py"
    command_timeout: int = 600

    # Email (optional)
    email_host: str = ""
    email_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_from: str = "noreply@meetcute.app"

    # Logging
    log_level: str = "info"

    @property
    def is_production(self) -> bool:
        return self.node_env.strip().lower() == "production"

    @model_validator(mode="after")
    def _validate_production(self) -> "Settings":
        if self.is_production:
            if self.jwt_secret in _INSECURE_JWT_DEFAULTS:
                raise ValueError(
                    "JWT_SECRET must be set to a secure value when NODE_ENV=production"
                )
            if len(self.jwt_secret) < 32:
                raise ValueError(
                    "JWT_SECRET must be at least 32 characters when NODE_ENV=production"
                )
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        env_ignore_empty = True


@dataclass(frozen=True)
class VariableSpec:
    """A recognized variable: its name, default and whether it is required."""

    name: str
    default: str | Callable[[], str]
    required: bool

    def default_value(self) -> str:
        """Return the default, generating it when it is computed per call."""
        if callable(self.default):
            return self.default()
        return self.default


def _random_jwt_secret() -> str:
    return secrets.token_hex(32)


VARIABLE_SPECS: tuple[VariableSpec, ...] = (
    VariableSpec("NODE_ENV", "development", True),
    VariableSpec("PORT", "5000", True),
    VariableSpec("JWT_SECRET", _random_jwt_secret, True),
    VariableSpec("FRONTEND_URL", "http://localhost:5173", True),
    VariableSpec("DB_HOST", "localhost", True),
    VariableSpec("DB_PORT", "5432", True),
    VariableSpec("DB_NAME", "meetcute", True),
    VariableSpec("DB_USER", "postgres", True),
    VariableSpec("DB_PASSWORD", "postgres", True),
    VariableSpec("EMAIL_HOST", "", False),
    VariableSpec("EMAIL_PORT", "587", False),
    VariableSpec("EMAIL_USER", "", False),
    VariableSpec("EMAIL_PASSWORD", "", False),
    VariableSpec("EMAIL_FROM", "noreply@meetcute.app", False),
)

REQUIRED_KEYS: tuple[str, ...] = tuple(spec.name for spec in VARIABLE_SPECS if spec.required)


def is_sensitive(key: str) -> bool:
    """True if the key names a password, secret, key or token."""
    upper = key.upper()
    return any(marker in upper for marker in SENSITIVE_MARKERS)


def mask_value(key: str, value: str) -> str:
    """Return the fixed mask for sensitive keys, the value otherwise."""
    return MASK if is_sensitive(key) else value
