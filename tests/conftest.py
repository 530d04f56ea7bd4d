"""Pytest configuration and fakes for rds_bootstrap tests."""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock

import pytest

from rds_bootstrap.config import BootstrapConfig, reset_config
from rds_bootstrap.secrets import SecretResolver

_QUOTED = re.compile(r"'((?:[^']|'')*)'")
_CREATED_NAME = re.compile(r"^CREATE (?:DATABASE|USER|PUBLICATION) (\S+)")


class FakeCursor:
    """Cursor that records statements on its connection and answers catalog queries."""

    def __init__(self, conn: FakeConnection) -> None:
        self._conn = conn
        self._row: tuple[Any, ...] | None = None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, sql: str) -> None:
        self._conn.record(sql)
        self._row = self._conn.server.answer(sql)

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._row


class FakeConnection:
    """Stands in for a psycopg2 connection bound to one database."""

    def __init__(self, server: FakeServer, params: dict[str, Any]) -> None:
        self.server = server
        self.params = params
        self.dbname = params["dbname"]
        self.autocommit = False
        self.statements: list[str] = []
        self.close_count = 0

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def record(self, sql: str) -> None:
        self.statements.append(sql)
        self.server.statements.append((self.dbname, sql))
        if self.server.fail_on and self.server.fail_on in sql:
            raise self.server.error_type(f"statement failed: {sql}")

    def close(self) -> None:
        self.close_count += 1
        self.server.open_count -= 1


class FakeServer:
    """
    An in-memory PostgreSQL catalog shared by every connection it hands out.

    `CREATE DATABASE/USER/PUBLICATION` statements add to the catalog, so a
    second bootstrap run against the same server sees the first run's work.
    """

    def __init__(self) -> None:
        self.databases: set[str] = {"postgres"}
        self.roles: set[str] = {"admin_user"}
        self.publications: set[str] = set()
        self.wal_level = "logical"
        self.connections: list[FakeConnection] = []
        self.statements: list[tuple[str, str]] = []
        self.fail_on: str | None = None
        self.error_type: type[Exception] = RuntimeError
        self.connect_error: Exception | None = None
        self.open_count = 0
        self.max_open = 0

    def connect(self, **params: Any) -> FakeConnection:
        if self.connect_error is not None:
            raise self.connect_error
        conn = FakeConnection(self, params)
        self.connections.append(conn)
        self.open_count += 1
        self.max_open = max(self.max_open, self.open_count)
        return conn

    def answer(self, sql: str) -> tuple[Any, ...] | None:
        if sql.startswith("SELECT exists"):
            name = _QUOTED.search(sql).group(1).replace("''", "'")
            if "pg_database" in sql:
                return (name.lower() in {db.lower() for db in self.databases},)
            if "pg_roles" in sql:
                return (name in self.roles,)
            if "pg_publication" in sql:
                return (name in self.publications,)
        if sql == "SHOW wal_level":
            return (self.wal_level,)
        created = _CREATED_NAME.match(sql)
        if created:
            name = created.group(1)
            if sql.startswith("CREATE DATABASE"):
                self.databases.add(name)
            elif sql.startswith("CREATE USER"):
                self.roles.add(name)
            else:
                self.publications.add(name)
        return None

    @property
    def sql(self) -> list[str]:
        return [sql for _, sql in self.statements]

    def sql_on(self, dbname: str) -> list[str]:
        return [sql for db, sql in self.statements if db == dbname]


@pytest.fixture(autouse=True)
def reset_config_for_tests() -> Generator[None, None, None]:
    """Reset config before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def secret_values() -> dict[str, str | None]:
    """SecretString values keyed by secret id. None means the secret has no SecretString."""
    return {
        "master-test": json.dumps({"username": "admin_user", "password": "admin_password"}),
        "app-test": json.dumps({"username": "myapp_user", "password": "myapp_password"}),
        "cdc-test": json.dumps({"username": "cdc_user", "password": "cdc_password"}),
    }


@pytest.fixture
def secrets_client(secret_values: dict[str, str | None]) -> MagicMock:
    """A Secrets Manager client double serving `secret_values`."""

    def get_secret_value(SecretId: str) -> dict[str, Any]:
        value = secret_values[SecretId]
        return {} if value is None else {"SecretString": value}

    client = MagicMock()
    client.get_secret_value.side_effect = get_secret_value
    return client


@pytest.fixture
def resolver(secrets_client: MagicMock) -> SecretResolver:
    return SecretResolver(client=secrets_client)


@pytest.fixture
def make_config() -> Callable[..., BootstrapConfig]:
    """Builds a config from test defaults; keyword overrides use the env var names."""

    def factory(**overrides: Any) -> BootstrapConfig:
        values: dict[str, Any] = {
            "MASTER_USER_SECRET": "master-test",
            "APP_USER_SECRET": "app-test",
            "CDC_USER_SECRET": "cdc-test",
            "APP_DATABASE_NAME": "app_database",
            "APP_SCHEMA_NAME": "app_schema",
            "RDS_HOST": "example",
        }
        values.update(overrides)
        return BootstrapConfig(_env_file=None, **values)

    return factory


@pytest.fixture
def read_logs(capsys: pytest.CaptureFixture[str]) -> Callable[[], list[dict[str, Any]]]:
    """Returns a function that parses the JSON log lines written so far."""

    def reader() -> list[dict[str, Any]]:
        out = capsys.readouterr().out
        return [json.loads(line) for line in out.splitlines() if line.startswith("{")]

    return reader
