"""
Value types shared by the bootstrap modules.

These are small, immutable Pydantic models. A `Credential` is decoded from a
secret payload, a `ProvisioningTarget` names the database and schema to
provision, and a `BootstrapResult` summarizes what a run did.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Suffix stripped from the service username to derive the database name.
SERVICE_USER_SUFFIX = "_user"


class Credential(BaseModel):
    """A username/password pair resolved from a secret."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)


class ProvisioningTarget(BaseModel):
    """The database and schema the service role is provisioned into."""

    model_config = ConfigDict(frozen=True)

    database_name: str
    schema_name: str

    @classmethod
    def derive(
        cls,
        service_username: str,
        database_name: str | None = None,
        schema_name: str | None = None,
    ) -> ProvisioningTarget:
        """
        Builds the target from explicit names, falling back to the service username.

        The database defaults to the username without a trailing `_user`
        (`myapp_user` -> `myapp`); the schema defaults to the username itself.
        """
        return cls(
            database_name=database_name or service_username.removesuffix(SERVICE_USER_SUFFIX),
            schema_name=schema_name or service_username,
        )


class BootstrapResult(BaseModel):
    """
    Summary of a completed bootstrap run.

    Attributes:
        message: Human-readable summary; the only value returned to callers
            of the entry point.
        target: The database and schema that were provisioned.
        usernames: Roles that were provisioned, service role first.
        created: Names of the entities created by this run (databases, roles
            and publications). Empty when the target was already provisioned.
        cdc_skipped_reason: Why the CDC phase did not run, or None if it ran.
    """

    message: str
    target: ProvisioningTarget
    usernames: list[str]
    created: list[str] = Field(default_factory=list)
    cdc_skipped_reason: str | None = None

    @property
    def cdc_enabled(self) -> bool:
        return self.cdc_skipped_reason is None

    def as_response(self) -> dict[str, str]:
        """The payload returned by the invocation entry points."""
        return {"message": self.message}
