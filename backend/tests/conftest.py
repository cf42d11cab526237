"""Shared fixtures for MeetCute bootstrap tests.

Provides scripted console sessions, isolated process environments and
fake database connections so no test touches a real server or terminal.
"""

import io
import os
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest

from meetcute.console import ConsoleSession
from meetcute.db.connection import ConnectionDescriptor, ConnectionSource


class ScriptedInput:
    """Stand-in for input(): answers prompts from a fixed list."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt=""):
        self.prompts.append(prompt)
        if not self.answers:
            raise RuntimeError(f"No scripted answer left for prompt {prompt!r}")
        return self.answers.pop(0)


class FakePgError(Exception):
    """DBAPI-style error carrying a PostgreSQL SQLSTATE."""

    def __init__(self, message, sqlstate):
        super().__init__(message)
        self.sqlstate = sqlstate


class FakeCatalogConnection:
    """Async connection double that keeps a pg_database catalog in memory."""

    def __init__(self, databases=(), create_error=None):
        self.databases = set(databases)
        self.create_error = create_error
        self.statements = []

    async def execute(self, statement, params=None):
        sql = str(statement)
        self.statements.append(sql)
        result = MagicMock()
        if "pg_database" in sql:
            result.first.return_value = (1,) if params["name"] in self.databases else None
        elif sql.startswith("CREATE DATABASE"):
            if self.create_error is not None:
                raise self.create_error
            name = sql.split('"')[1]
            if name in self.databases:
                raise FakePgError(f'database "{name}" already exists', "42P04")
            self.databases.add(name)
        else:
            result.first.return_value = (1,)
        return result


def make_open_connection(conn=None, error=None, calls=None):
    """Build a replacement for ``open_connection`` that yields ``conn`` or raises ``error``."""

    @asynccontextmanager
    async def _open(descriptor, database=None, timeout=None, autocommit=False):
        if calls is not None:
            calls.append({"database": database, "autocommit": autocommit})
        if error is not None:
            raise error
        yield conn

    return _open


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch):
    """Keep os.environ changes (e.g. from load_dotenv) from leaking between tests."""
    saved = dict(os.environ)
    for key in ("DATABASE_URL", "NODE_ENV", "JWT_SECRET", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith("DB_"):
            monkeypatch.delenv(key, raising=False)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def scripted_session():
    """Factory: ConsoleSession fed by scripted answers, output captured in ``session.buffer``."""

    def _factory(*answers):
        buffer = io.StringIO()
        session = ConsoleSession(
            input_fn=ScriptedInput(answers),
            stdout=buffer,
            color_enabled=False,
        )
        session.buffer = buffer
        return session

    return _factory


@pytest.fixture
def discrete_descriptor():
    return ConnectionDescriptor(
        user="postgres",
        password="hunter2pw",
        host="localhost",
        port=5432,
        database="meetcute",
        tls_required=False,
        source=ConnectionSource.DISCRETE,
    )


@pytest.fixture
def url_descriptor():
    return ConnectionDescriptor(
        user="app",
        password="s3cretpw",
        host="db.example.com",
        port=5432,
        database="meetcute",
        tls_required=True,
        source=ConnectionSource.URL,
    )
