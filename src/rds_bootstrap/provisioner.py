"""
Existence-guarded creation of databases and login roles.

Each function checks the catalog first and only issues the `CREATE` statement
when the entity is missing, so running the bootstrap against an already
provisioned cluster is a no-op for this step. Nothing is ever altered or
dropped: an existing role keeps its current password.
"""

from __future__ import annotations

from . import statements
from .connection import DatabaseSession
from .logger import log_event
from .models import Credential


def ensure_database(session: DatabaseSession, database: str) -> bool:
    """
    Creates `database` unless a database with the same name (compared
    case-insensitively) exists.

    Returns:
        bool: True if the database was created by this call.
    """
    if session.exists(statements.database_exists(database)):
        log_event("INFO", "database_exists", database=database)
        return False
    session.execute(statements.create_database(database))
    log_event("INFO", "database_created", database=database)
    return True


def ensure_role(session: DatabaseSession, credential: Credential) -> bool:
    """
    Creates a login role for `credential` unless a role of that name exists.

    Returns:
        bool: True if the role was created by this call.
    """
    if session.exists(statements.role_exists(credential.username)):
        log_event("INFO", "role_exists", role=credential.username)
        return False
    session.execute(
        statements.create_user(credential.username, credential.password),
        secrets=(credential.password,),
    )
    log_event("INFO", "role_created", role=credential.username)
    return True
