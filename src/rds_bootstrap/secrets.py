"""
Credential resolution from AWS Secrets Manager.

Every credential the bootstrap uses lives in a Secrets Manager secret whose
`SecretString` is a JSON object with at least `username` and `password`
(the layout RDS itself uses for managed master secrets). This module fetches
those payloads and decodes them into `Credential` values.

Required secrets (master and service) either decode or raise
`SecretDecodeError`. The optional CDC secret distinguishes "absent", which
skips the CDC phase, from "broken", which is fatal unless the caller opts out
of strict decoding.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

import boto3
from pydantic import ValidationError

from .logger import log_event
from .models import Credential


class BootstrapError(RuntimeError):
    """Base class for errors raised by the bootstrap workflow itself."""


class SecretDecodeError(BootstrapError):
    """A secret payload is missing, is not JSON, or lacks `username`/`password`."""

    def __init__(self, secret_id: str, reason: str) -> None:
        super().__init__(f"Secret '{secret_id}' {reason}")
        self.secret_id = secret_id
        self.reason = reason


class CdcResolution(NamedTuple):
    """Outcome of resolving the optional CDC secret."""

    credential: Credential | None
    skip_reason: str | None


def decode_credential(secret_id: str, raw: str | None) -> Credential:
    """
    Decodes a secret payload into a `Credential`.

    Args:
        secret_id: Id of the secret, used in error messages.
        raw: The `SecretString` value, possibly None or empty.

    Returns:
        Credential: The decoded username/password pair.

    Raises:
        SecretDecodeError: If the payload is empty, is not valid JSON, is not a
            JSON object, or lacks a non-empty `username` or `password`.
    """
    if not raw:
        raise SecretDecodeError(secret_id, "is empty")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SecretDecodeError(secret_id, f"is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise SecretDecodeError(secret_id, "is not a JSON object")
    try:
        return Credential.model_validate(payload)
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise SecretDecodeError(secret_id, f"is missing or has empty field(s): {', '.join(missing)}") from exc


class SecretResolver:
    """
    Resolves secret ids to credentials through a Secrets Manager client.

    The client is injected so that the process builds it once and tests can
    substitute a stub; when omitted, a `boto3` client is created.
    """

    def __init__(self, client: Any | None = None, region_name: str | None = None) -> None:
        self._client = client if client is not None else boto3.client("secretsmanager", region_name=region_name)

    def fetch(self, secret_id: str) -> str | None:
        """
        Returns the raw `SecretString` of a secret, or None if it has none.

        Raises:
            botocore.exceptions.ClientError: If Secrets Manager rejects the call
                (e.g. `ResourceNotFoundException`, `AccessDeniedException`).
        """
        response = self._client.get_secret_value(SecretId=secret_id)
        return response.get("SecretString") or None

    def resolve(self, secret_id: str) -> Credential:
        """Resolves a required secret. Any decode failure is fatal."""
        return decode_credential(secret_id, self.fetch(secret_id))

    def resolve_optional(self, secret_id: str | None, *, strict: bool = True) -> CdcResolution:
        """
        Resolves the optional CDC secret.

        The secret counts as absent, and the result carries a skip reason, when
        the id is not configured, the payload is empty, or the payload lacks a
        username or password. A payload that is not valid JSON raises when
        `strict` is set and counts as absent otherwise.

        Raises:
            SecretDecodeError: If `strict` and the payload is not valid JSON.
            botocore.exceptions.ClientError: If Secrets Manager rejects the call.
        """
        if not secret_id:
            return CdcResolution(None, "CDC_USER_SECRET not set")

        raw = self.fetch(secret_id)
        if not raw:
            return CdcResolution(None, f"CDC secret '{secret_id}' is empty")

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            if strict:
                raise SecretDecodeError(secret_id, f"is not valid JSON: {exc.msg}") from exc
            log_event("WARNING", "cdc_secret_unparseable", secret_id=secret_id, error=exc.msg)
            return CdcResolution(None, f"CDC secret '{secret_id}' is not valid JSON")

        if not isinstance(payload, dict) or not payload.get("username") or not payload.get("password"):
            return CdcResolution(None, f"CDC secret '{secret_id}' has no username or password")
        return CdcResolution(decode_credential(secret_id, raw), None)
