"""
SQL statement builders for the bootstrap workflow.

Every statement the bootstrap issues is built here, as text, so that the exact
sequence can be logged, tested and reviewed in one place. Names come from
operator configuration and secrets, never from end users, but they are still
rendered through the SQLAlchemy PostgreSQL identifier preparer: ordinary
lowercase names stay bare (`myapp_user`) while anything unusual (reserved
words, uppercase, punctuation) is double-quoted and escaped.
"""

from __future__ import annotations

from sqlalchemy.dialects import postgresql

# named paramstyle keeps the preparer from doubling '%' signs; statements are
# executed without bind parameters.
_dialect = postgresql.dialect(paramstyle="named")
_preparer = _dialect.identifier_preparer

# Extensions installed into the application schema.
SCHEMA_EXTENSIONS = ("pg_trgm", "intarray")

# RDS-managed role that allows logical replication slots to be used.
REPLICATION_ROLE = "rds_replication"

# Publications only stream changes once the instance runs with wal_level=logical.
SHOW_WAL_LEVEL = "SHOW wal_level"


def quote_ident(name: str) -> str:
    """Renders an identifier, quoting it only when PostgreSQL requires it."""
    return _preparer.quote(name)


def quote_literal(value: str) -> str:
    """Renders a string literal with embedded single quotes doubled."""
    return "'" + value.replace("'", "''") + "'"


# --- Existence checks ---


def database_exists(database: str) -> str:
    return (
        "SELECT exists(SELECT FROM pg_catalog.pg_database "
        f"WHERE lower(datname) = lower({quote_literal(database)}))"
    )


def role_exists(username: str) -> str:
    return f"SELECT exists(SELECT FROM pg_roles WHERE rolname={quote_literal(username)})"


def publication_exists(publication: str) -> str:
    return f"SELECT exists(SELECT FROM pg_publication WHERE pubname={quote_literal(publication)})"


# --- Creation ---


def create_database(database: str) -> str:
    return f"CREATE DATABASE {quote_ident(database)}"


def create_user(username: str, password: str) -> str:
    return f"CREATE USER {quote_ident(username)} WITH ENCRYPTED PASSWORD {quote_literal(password)}"


def create_publication(publication: str) -> str:
    return f"CREATE PUBLICATION {quote_ident(publication)} FOR ALL TABLES"


# --- Grant sequences ---


def service_grants(database: str, schema: str, username: str) -> list[str]:
    """
    The ordered statements that hand the target database to the service role.

    Extensions are created while PUBLIC still holds its default privileges on
    the public schema; PUBLIC is revoked after the service role has its own
    grants; ownership moves last so the admin session can run every prior step.
    """
    db, sch, user = quote_ident(database), quote_ident(schema), quote_ident(username)
    return [
        f"CREATE SCHEMA IF NOT EXISTS {sch}",
        *(f"CREATE EXTENSION IF NOT EXISTS {ext} SCHEMA {sch} CASCADE" for ext in SCHEMA_EXTENSIONS),
        f"GRANT CONNECT ON DATABASE {db} TO {user}",
        f"GRANT CREATE ON DATABASE {db} TO {user}",
        f"CREATE SCHEMA IF NOT EXISTS {sch}",
        "REVOKE CREATE ON SCHEMA public FROM PUBLIC",
        f"REVOKE ALL ON DATABASE {db} FROM PUBLIC",
        f"GRANT USAGE, CREATE ON SCHEMA {sch} TO {user}",
        f"ALTER DEFAULT PRIVILEGES IN SCHEMA {sch} GRANT ALL PRIVILEGES ON TABLES TO {user}",
        f"GRANT ALL PRIVILEGES ON DATABASE {db} TO {user}",
        f"ALTER DATABASE {db} OWNER TO {user}",
    ]


def cdc_grants(database: str, schema: str, username: str) -> list[str]:
    """The ordered statements that let the CDC role read and replicate the target database."""
    db, sch, user = quote_ident(database), quote_ident(schema), quote_ident(username)
    return [
        f"GRANT CONNECT ON DATABASE {db} TO {user}",
        f"GRANT SELECT ON ALL TABLES IN SCHEMA {sch} TO {user}",
        f"GRANT {REPLICATION_ROLE} TO {user}",
    ]
