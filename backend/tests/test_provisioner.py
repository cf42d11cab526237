"""Tests for idempotent database provisioning."""

import pytest
from sqlalchemy.exc import ProgrammingError

from meetcute.db.provisioner import DbProvisioner, ProvisionOutcome, check_database_name
from meetcute.errors import BootstrapError, InvalidDatabaseNameError

from conftest import FakeCatalogConnection, FakePgError


@pytest.mark.asyncio
async def test_existing_database_is_noop():
    conn = FakeCatalogConnection(databases={"meetcute"})
    outcome = await DbProvisioner().provision(conn, "meetcute")
    assert outcome is ProvisionOutcome.EXISTED
    assert not any(s.startswith("CREATE") for s in conn.statements)


@pytest.mark.asyncio
async def test_missing_database_is_created():
    conn = FakeCatalogConnection()
    outcome = await DbProvisioner().provision(conn, "meetcute")
    assert outcome is ProvisionOutcome.CREATED
    assert 'CREATE DATABASE "meetcute"' in conn.statements
    assert "meetcute" in conn.databases


@pytest.mark.asyncio
async def test_ensure_exists_twice_is_idempotent():
    conn = FakeCatalogConnection()
    provisioner = DbProvisioner()
    assert await provisioner.ensure_exists(conn, "meetcute") is True
    assert await provisioner.ensure_exists(conn, "meetcute") is True
    creates = [s for s in conn.statements if s.startswith("CREATE")]
    assert len(creates) == 1


@pytest.mark.asyncio
async def test_concurrent_create_is_benign():
    # Another provisioner created the database between our check and our CREATE
    race = ProgrammingError(
        'CREATE DATABASE "meetcute"', {}, FakePgError('database "meetcute" already exists', "42P04")
    )
    conn = FakeCatalogConnection(create_error=race)
    provisioner = DbProvisioner()
    assert await provisioner.provision(conn, "meetcute") is ProvisionOutcome.RACED
    assert await provisioner.ensure_exists(conn, "meetcute") is True


@pytest.mark.asyncio
async def test_unique_violation_on_catalog_is_benign():
    conn = FakeCatalogConnection(create_error=FakePgError("duplicate key value", "23505"))
    assert await DbProvisioner().provision(conn, "meetcute") is ProvisionOutcome.RACED


@pytest.mark.asyncio
async def test_other_create_failure_raises():
    conn = FakeCatalogConnection(create_error=FakePgError("permission denied to create database", "42501"))
    with pytest.raises(BootstrapError, match="permission denied") as exc_info:
        await DbProvisioner().provision(conn, "meetcute")
    assert exc_info.value.stage == "provision"


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [
    'meetcute"; DROP DATABASE postgres; --',
    "meet-cute",
    "1meetcute",
    "",
    "a" * 64,
])
async def test_invalid_names_rejected_before_any_sql(name):
    conn = FakeCatalogConnection()
    with pytest.raises(InvalidDatabaseNameError):
        await DbProvisioner().provision(conn, name)
    assert conn.statements == []


@pytest.mark.parametrize("name", ["meetcute", "MeetCute_2", "_staging", "a" * 63])
def test_valid_names_accepted(name):
    assert check_database_name(name) == name
