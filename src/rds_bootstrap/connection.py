"""
Scoped PostgreSQL sessions for the bootstrap phases.

Each bootstrap phase opens its own connection, runs a fixed list of
statements, and closes it again before the next phase starts. The
`open_session` context manager makes that lifecycle explicit:

```
with open_session(config, master, database="myapp") as session:
    session.execute("CREATE SCHEMA IF NOT EXISTS myapp_user")
# The connection is closed here, whether the block succeeded or raised.
```

Connections run in autocommit mode. `CREATE DATABASE` cannot run inside a
transaction block, and the bootstrap never rolls back: statements that
completed before a failure stay applied.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from typing import Any

import psycopg2

from .config import BootstrapConfig
from .logger import log_event
from .models import Credential
from .statements import quote_literal

ConnectFn = Callable[..., Any]

_REDACTED = "'***'"


class DatabaseSession:
    """
    A thin wrapper over a DB-API connection bound to one database.

    Every statement is logged, with the database label and the literal
    statement text, immediately before it is submitted. Password literals
    passed via `secrets` are masked in the log line but not in the statement.
    """

    def __init__(self, conn: Any, database: str) -> None:
        self._conn = conn
        self.database = database

    def _log(self, sql: str, secrets: Iterable[str]) -> None:
        text = sql
        for secret in secrets:
            text = text.replace(quote_literal(secret), _REDACTED)
        log_event("INFO", "execute_statement", database=self.database, statement=text)

    def execute(self, sql: str, secrets: Iterable[str] = ()) -> None:
        """Logs and executes a statement that returns no rows."""
        self._log(sql, secrets)
        with self._conn.cursor() as cur:
            cur.execute(sql)

    def fetch_value(self, sql: str) -> Any:
        """Logs and executes a single-row query, returning its first column."""
        self._log(sql, ())
        with self._conn.cursor() as cur:
            cur.execute(sql)
            row = cur.fetchone()
        return row[0] if row else None

    def exists(self, sql: str) -> bool:
        """Runs a `SELECT exists(...)` query."""
        return bool(self.fetch_value(sql))


@contextmanager
def open_session(
    config: BootstrapConfig,
    credential: Credential,
    database: str | None = None,
    connect: ConnectFn = psycopg2.connect,
) -> Generator[DatabaseSession, None, None]:
    """
    Opens a connection as `credential` and closes it on every exit path.

    Args:
        config: Supplies the host, port and administrative database.
        credential: The login used for the connection.
        database: The database to connect to. None means the administrative
            database (`ADMIN_DATABASE`).
        connect: The DB-API connect function. Defaults to `psycopg2.connect`.

    Yields:
        DatabaseSession: A session bound to the connected database.

    Raises:
        psycopg2.OperationalError: If the connection cannot be opened. Nothing
            is closed in that case.
        psycopg2.Error: If a statement fails. The connection is closed first.
    """
    dbname = database or config.admin_database
    conn = connect(
        host=config.rds_host,
        port=config.rds_port,
        user=credential.username,
        password=credential.password,
        dbname=dbname,
    )
    try:
        conn.autocommit = True
        yield DatabaseSession(conn, dbname)
    finally:
        conn.close()
        log_event("INFO", "connection_closed", database=dbname, user=credential.username)
