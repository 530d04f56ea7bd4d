"""
Grant sequences for the service and CDC roles.

Both sequences run as the administrator against the target database. They
are fixed lists executed in order; a failing statement aborts the sequence
and the error propagates to the caller, which owns the connection.
"""

from __future__ import annotations

from . import statements
from .connection import DatabaseSession
from .logger import log_event
from .models import ProvisioningTarget


def apply_service_grants(session: DatabaseSession, target: ProvisioningTarget, username: str) -> None:
    """Creates the schema and extensions and hands the database to the service role."""
    for sql in statements.service_grants(target.database_name, target.schema_name, username):
        session.execute(sql)


def apply_cdc_grants(
    session: DatabaseSession,
    target: ProvisioningTarget,
    username: str,
    publication: str,
) -> bool:
    """
    Grants the CDC role read and replication rights and ensures the publication.

    A `wal_level` other than `logical` is reported as a warning but does not
    stop the sequence; the parameter group is managed outside the bootstrap.

    Returns:
        bool: True if the publication was created by this call.
    """
    for sql in statements.cdc_grants(target.database_name, target.schema_name, username):
        session.execute(sql)

    wal_level = session.fetch_value(statements.SHOW_WAL_LEVEL)
    if wal_level != "logical":
        log_event("WARNING", "wal_level_not_logical", database=session.database, wal_level=wal_level)

    if session.exists(statements.publication_exists(publication)):
        log_event("INFO", "publication_exists", publication=publication)
        return False
    session.execute(statements.create_publication(publication))
    log_event("INFO", "publication_created", publication=publication)
    return True
