"""Resolve a single connection descriptor from URL-form or discrete settings."""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from meetcute.config import Settings
from meetcute.errors import MalformedConnectionStringError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432
DRIVER = "postgresql+asyncpg"


class ConnectionSource(str, Enum):
    URL = "url"
    DISCRETE = "discrete"


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Normalized database connection parameters. Read-only; derive a new one per use."""

    user: str
    password: str
    host: str
    port: int
    database: str
    tls_required: bool
    source: ConnectionSource = ConnectionSource.DISCRETE

    @property
    def allows_create(self) -> bool:
        """Only discrete-field configuration may auto-create the database.

        With DATABASE_URL the database must already exist.
        """
        return self.source is ConnectionSource.DISCRETE

    def url(self, database: str | None = None) -> URL:
        """Build an asyncpg URL for ``database`` (the target database by default)."""
        return URL.create(
            DRIVER,
            username=self.user or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=database or self.database,
        )

    def connect_args(self, timeout: int | None = None) -> dict:
        args: dict = {}
        if self.tls_required:
            # Encrypted, certificate not verified (managed hosting default)
            args["ssl"] = "require"
        if timeout:
            args["timeout"] = timeout
        return args

    def redacted(self, database: str | None = None) -> str:
        return self.url(database).render_as_string(hide_password=True)


def resolve_connection(settings: Settings) -> ConnectionDescriptor:
    """Derive the descriptor, preferring DATABASE_URL over the discrete DB_* fields.

    Raises MalformedConnectionStringError when DATABASE_URL is set but unusable.
    """
    tls_required = settings.is_production
    raw_url = (settings.database_url or "").strip()
    if raw_url:
        return _from_url(raw_url, tls_required)

    return ConnectionDescriptor(
        user=settings.db_user,
        password=settings.db_password,
        host=settings.db_host,
        port=settings.db_port or DEFAULT_PORT,
        database=settings.db_name,
        tls_required=tls_required,
        source=ConnectionSource.DISCRETE,
    )


def _from_url(raw_url: str, tls_required: bool) -> ConnectionDescriptor:
    try:
        url = make_url(raw_url)
        port = url.port
    except (ArgumentError, ValueError) as e:
        logger.error("DATABASE_URL could not be parsed: %s", type(e).__name__)
        raise MalformedConnectionStringError("DATABASE_URL is not a valid database URL") from e

    if not url.host or not url.database:
        raise MalformedConnectionStringError(
            f"DATABASE_URL must include a host and a database name: "
            f"{url.render_as_string(hide_password=True)}"
        )

    return ConnectionDescriptor(
        user=url.username or "",
        password=url.password or "",
        host=url.host,
        port=port or DEFAULT_PORT,
        database=url.database.lstrip("/"),
        tls_required=tls_required,
        source=ConnectionSource.URL,
    )
