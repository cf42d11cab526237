"""Scoped connection helpers and PostgreSQL error classification."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine
from sqlalchemy.pool import NullPool

from meetcute.config import MASK
from meetcute.db.connection import ConnectionDescriptor

# PostgreSQL SQLSTATE codes the bootstrap cares about
INVALID_CATALOG_NAME = "3D000"
DUPLICATE_DATABASE = "42P04"
UNIQUE_VIOLATION = "23505"
INVALID_PASSWORD = "28P01"
INVALID_AUTHORIZATION = "28000"


@asynccontextmanager
async def open_connection(
    descriptor: ConnectionDescriptor,
    database: str | None = None,
    timeout: int | None = None,
    autocommit: bool = False,
) -> AsyncIterator[AsyncConnection]:
    """Open one connection for the duration of a stage and always dispose the engine."""
    kwargs: dict = {
        "poolclass": NullPool,
        "connect_args": descriptor.connect_args(timeout),
    }
    if autocommit:
        kwargs["isolation_level"] = "AUTOCOMMIT"
    engine = create_async_engine(descriptor.url(database), **kwargs)
    try:
        async with engine.connect() as conn:
            yield conn
    finally:
        await engine.dispose()


def sqlstate_of(exc: BaseException | None) -> str | None:
    """Find the SQLSTATE code on an exception or anything it wraps."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        for attr in ("sqlstate", "pgcode"):
            code = getattr(exc, attr, None)
            if isinstance(code, str) and code:
                return code
        exc = getattr(exc, "orig", None) or exc.__cause__
    return None


def scrub(message: str, descriptor: ConnectionDescriptor) -> str:
    """Replace the password in an error message with the mask token."""
    if descriptor.password:
        message = message.replace(descriptor.password, MASK)
    return message
