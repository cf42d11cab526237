"""Idempotent create-if-absent for the target database."""

import logging
import re
from enum import Enum

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from meetcute.db.engine import DUPLICATE_DATABASE, UNIQUE_VIOLATION, sqlstate_of
from meetcute.db.probe import database_exists
from meetcute.errors import BootstrapError, InvalidDatabaseNameError, ProvisioningRaceError

logger = logging.getLogger(__name__)

DATABASE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class ProvisionOutcome(str, Enum):
    EXISTED = "existed"
    CREATED = "created"
    RACED = "raced"  # another provisioner created it between check and create


def check_database_name(name: str) -> str:
    if not DATABASE_NAME_PATTERN.match(name or ""):
        raise InvalidDatabaseNameError(
            f"Invalid database name {name!r}: use letters, digits and underscores only"
        )
    return name


class DbProvisioner:
    """Check the catalog, create the database when absent.

    Not transactional against concurrent provisioners: a duplicate-database
    error from CREATE is treated as the database already existing.
    The connection must be in AUTOCOMMIT mode.
    """

    async def provision(self, conn: AsyncConnection, database_name: str) -> ProvisionOutcome:
        name = check_database_name(database_name)

        if await database_exists(conn, name):
            logger.info("Database %s already exists", name)
            return ProvisionOutcome.EXISTED

        try:
            await self._create(conn, name)
        except ProvisioningRaceError:
            logger.warning("Database %s was created concurrently, treating as existing", name)
            return ProvisionOutcome.RACED

        logger.info("Database %s created", name)
        return ProvisionOutcome.CREATED

    async def ensure_exists(self, conn: AsyncConnection, database_name: str) -> bool:
        await self.provision(conn, database_name)
        return True

    async def _create(self, conn: AsyncConnection, name: str) -> None:
        try:
            # Name is allow-listed above, so quoting cannot be escaped
            await conn.execute(text(f'CREATE DATABASE "{name}"'))
        except Exception as e:
            if sqlstate_of(e) in (DUPLICATE_DATABASE, UNIQUE_VIOLATION):
                raise ProvisioningRaceError(f"Database {name} already exists") from e
            logger.error(f"Failed to create database {name}: {e}")
            raise BootstrapError(f"Failed to create database '{name}': {e}", stage="provision") from e
