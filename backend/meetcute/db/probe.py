"""Reachability probe for the database server."""

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from meetcute.db.connection import ConnectionDescriptor
from meetcute.db.engine import (
    INVALID_AUTHORIZATION,
    INVALID_CATALOG_NAME,
    INVALID_PASSWORD,
    open_connection,
    scrub,
    sqlstate_of,
)
from meetcute.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

_NON_RETRYABLE = {INVALID_CATALOG_NAME, INVALID_PASSWORD, INVALID_AUTHORIZATION}


@dataclass
class ProbeResult:
    reachable: bool
    database_exists: bool
    error: DatabaseConnectionError | None = None


async def database_exists(conn: AsyncConnection, name: str) -> bool:
    """Look the database up in the pg_database catalog."""
    result = await conn.execute(
        text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": name}
    )
    return result.first() is not None


def _is_retryable(exc: BaseException) -> bool:
    return sqlstate_of(exc) not in _NON_RETRYABLE


class DbConnectionProbe:
    """Connects to the administrative database and classifies the outcome.

    A server that answers but lacks the target database (SQLSTATE 3D000 or
    no catalog row) is reported as reachable with ``database_exists=False``.
    Anything else (auth, network, timeout) is unreachable and carries the error.
    """

    def __init__(self, admin_database: str = "postgres", timeout: int = 10, attempts: int = 1):
        self.admin_database = admin_database
        self.timeout = timeout
        self.attempts = max(1, attempts)

    async def probe(self, descriptor: ConnectionDescriptor) -> ProbeResult:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    exists = await self._check(descriptor)
        except Exception as e:
            if sqlstate_of(e) == INVALID_CATALOG_NAME:
                logger.info("Server reachable, database %s does not exist", descriptor.database)
                return ProbeResult(reachable=True, database_exists=False)
            message = scrub(str(e) or type(e).__name__, descriptor)
            logger.error(f"Database connection error for {descriptor.redacted(self.admin_database)}: {message}")
            return ProbeResult(
                reachable=False,
                database_exists=False,
                error=DatabaseConnectionError(f"Failed to connect to PostgreSQL server: {message}"),
            )

        logger.info("Server reachable, database %s exists=%s", descriptor.database, exists)
        return ProbeResult(reachable=True, database_exists=exists)

    async def _check(self, descriptor: ConnectionDescriptor) -> bool:
        async with open_connection(descriptor, self.admin_database, timeout=self.timeout) as conn:
            await conn.execute(text("SELECT 1"))
            return await database_exists(conn, descriptor.database)
