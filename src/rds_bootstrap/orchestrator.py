"""
The end-to-end bootstrap workflow.

`bootstrap` runs the phases in a fixed order, each on its own connection:

1. **secrets**: resolve the master, service and (optional) CDC credentials.
   Nothing touches the database until all of them have decoded.
2. **identities**: on one admin connection to the administrative database,
   ensure the target database, the service role and the CDC role exist.
3. **service_grants**: on an admin connection to the target database, create
   the schema and extensions and hand the database to the service role.
4. **cdc_grants**: only when a CDC credential resolved, on a fresh admin
   connection to the target database, grant the CDC role read and
   replication rights and ensure the publication.

Each connection is closed before the next one opens. There is no retry and
no rollback: the first failure is logged and re-raised to the caller.
"""

from __future__ import annotations

from .config import BootstrapConfig
from .connection import ConnectFn, open_session
from .grants import apply_cdc_grants, apply_service_grants
from .logger import log_event
from .models import BootstrapResult, ProvisioningTarget
from .provisioner import ensure_database, ensure_role
from .secrets import SecretResolver


def _ready_message(target: ProvisioningTarget, usernames: list[str]) -> str:
    return f"Database '{target.database_name}' for username(s) '{' & '.join(usernames)}' is ready for use!"


def bootstrap(config: BootstrapConfig, resolver: SecretResolver, connect: ConnectFn) -> BootstrapResult:
    """
    Provisions the target database, schema and roles described by `config`.

    Args:
        config: The loaded bootstrap configuration.
        resolver: Resolves secret ids to credentials.
        connect: The DB-API connect function used for every phase.

    Returns:
        BootstrapResult: What was provisioned, with the summary message.

    Raises:
        SecretDecodeError: If a required secret (or, in strict mode, the CDC
            secret) cannot be decoded.
        botocore.exceptions.ClientError: If Secrets Manager rejects a lookup.
        psycopg2.Error: If a connection or statement fails.
    """
    try:
        return _run(config, resolver, connect)
    except Exception as exc:
        log_event("ERROR", "bootstrap_failed", error_type=type(exc).__name__, error=str(exc))
        raise


def _run(config: BootstrapConfig, resolver: SecretResolver, connect: ConnectFn) -> BootstrapResult:
    log_event("INFO", "bootstrap_started", **config.log_summary())

    # --- Phase 1: secrets ---
    master = resolver.resolve(config.master_user_secret)
    service = resolver.resolve(config.app_user_secret)
    cdc, skip_reason = resolver.resolve_optional(config.cdc_user_secret, strict=config.cdc_secret_strict)

    target = ProvisioningTarget.derive(service.username, config.app_database_name, config.app_schema_name)
    created: list[str] = []

    # --- Phase 2: identities ---
    log_event("INFO", "phase_started", phase="identities", database=config.admin_database)
    with open_session(config, master, connect=connect) as session:
        if ensure_database(session, target.database_name):
            created.append(target.database_name)
        if ensure_role(session, service):
            created.append(service.username)
        if cdc is not None and ensure_role(session, cdc):
            created.append(cdc.username)
    log_event("INFO", "phase_completed", phase="identities", database=config.admin_database)

    # --- Phase 3: service grants ---
    log_event("INFO", "phase_started", phase="service_grants", database=target.database_name)
    with open_session(config, master, target.database_name, connect=connect) as session:
        apply_service_grants(session, target, service.username)
    log_event("INFO", "phase_completed", phase="service_grants", database=target.database_name)

    # --- Phase 4: CDC grants ---
    usernames = [service.username]
    if cdc is None:
        log_event("INFO", "cdc_skipped", reason=skip_reason)
        message = f"{_ready_message(target, usernames)} {skip_reason}; skipping CDC user/publication setup."
    else:
        log_event("INFO", "phase_started", phase="cdc_grants", database=target.database_name)
        with open_session(config, master, target.database_name, connect=connect) as session:
            if apply_cdc_grants(session, target, cdc.username, config.cdc_publication_name):
                created.append(config.cdc_publication_name)
        log_event("INFO", "phase_completed", phase="cdc_grants", database=target.database_name)
        usernames.append(cdc.username)
        message = _ready_message(target, usernames)

    result = BootstrapResult(
        message=message,
        target=target,
        usernames=usernames,
        created=created,
        cdc_skipped_reason=skip_reason,
    )
    log_event("INFO", "bootstrap_complete", message=message, created=created)
    return result
