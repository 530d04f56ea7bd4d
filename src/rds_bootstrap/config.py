"""
Centralized Configuration Management for the bootstrap workflow.

This module is the single source of truth for everything the bootstrap reads
from its environment. It uses Pydantic's `BaseSettings` so that each setting
is typed, validated once at start-up, and documented next to its definition.

Core Features:
- **Environment Variable Loading**: Every setting is read from the environment
  variable named in its `alias`, which matches the names used by the
  deployment tooling that invokes the bootstrap (`MASTER_USER_SECRET`,
  `RDS_HOST`, ...).
- **`.env` File Support**: For local runs, a `.env` file in the working
  directory is honoured.
- **Validation**: Port ranges and identifier-like values are checked before
  any secret is fetched or any connection is opened.
- **Singleton Access**: `get_config` lazily builds one instance per process;
  `reset_config` clears it for tests.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes.
MAX_IDENTIFIER_LENGTH = 63


class BootstrapConfig(BaseSettings):
    """
    Defines the configuration schema of the bootstrap workflow.

    The class is organized into logical sections:
    - Runtime Environment: labels attached to every log line.
    - Secrets: the Secrets Manager ids holding the admin, service and CDC
      credentials.
    - Target: the database and schema to provision, derived from the service
      username when not given.
    - Connection: where the PostgreSQL cluster lives.
    - CDC: the publication name and how strictly the CDC secret is decoded.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --- Runtime Environment ---
    environment: Literal["local", "dev", "staging", "prod"] = Field(
        default="local",
        alias="BOOTSTRAP_ENV",
        description="Deployment environment label attached to log lines.",
    )

    # --- Secrets ---
    master_user_secret: str = Field(
        alias="MASTER_USER_SECRET",
        description=(
            "Name of the secret which contains the administrator login credentials "
            "for the RDS cluster. The value must be a JSON object with `username` "
            "and `password`."
        ),
    )
    app_user_secret: str = Field(
        alias="APP_USER_SECRET",
        description=(
            "Name of the secret which contains the application login credentials. "
            "The value must be a JSON object with `username` and `password`."
        ),
    )
    cdc_user_secret: str | None = Field(
        default=None,
        alias="CDC_USER_SECRET",
        description=(
            "Name of the secret which contains the CDC login credentials. When "
            "unset, CDC user and publication setup is skipped."
        ),
    )
    aws_region: str | None = Field(
        default=None,
        alias="AWS_REGION",
        description="Region of the Secrets Manager endpoint. Falls back to the boto3 default chain.",
    )

    # --- Target ---
    app_database_name: str | None = Field(
        default=None,
        alias="APP_DATABASE_NAME",
        description=(
            "Database to initialize for the application user. Defaults to the "
            "application username with a trailing `_user` removed."
        ),
    )
    app_schema_name: str | None = Field(
        default=None,
        alias="APP_SCHEMA_NAME",
        description="Schema to initialize for the application user. Defaults to the application username.",
    )

    # --- PostgreSQL Connection ---
    rds_host: str = Field(
        alias="RDS_HOST",
        description="RDS host to which the bootstrap connects.",
    )
    rds_port: int = Field(default=5432, alias="RDS_PORT", description="Port of the RDS cluster.")
    admin_database: str = Field(
        default="postgres",
        alias="ADMIN_DATABASE",
        description="Database the administrator connects to when no target database is given.",
    )

    # --- CDC ---
    cdc_publication_name: str = Field(
        default="cdc_publication",
        alias="CDC_PUBLICATION_NAME",
        description="Name of the logical replication publication created for CDC.",
    )
    cdc_secret_strict: bool = Field(
        default=True,
        alias="CDC_SECRET_STRICT",
        description=(
            "When true, a CDC secret that is not valid JSON aborts the run. When "
            "false, it is treated like an absent secret and CDC setup is skipped."
        ),
    )

    @field_validator("cdc_user_secret", "app_database_name", "app_schema_name", "aws_region", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        """Treats empty or whitespace-only optional values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("rds_port")
    @classmethod
    def validate_rds_port(cls, v: int) -> int:
        """
        Ensures that the port is within the valid TCP/IP port range.

        Raises:
            ValueError: If the port is not between 1 and 65535.
        """
        if not (1 <= v <= 65535):
            raise ValueError(f"Invalid RDS port: {v} (must be 1-65535)")
        return v

    @field_validator("app_database_name", "app_schema_name", "admin_database", "cdc_publication_name")
    @classmethod
    def validate_identifier(cls, v: str | None) -> str | None:
        """
        Rejects values that PostgreSQL cannot hold as an identifier.

        Raises:
            ValueError: If the value is longer than 63 characters or contains
                a NUL byte.
        """
        if v is None:
            return v
        if len(v) > MAX_IDENTIFIER_LENGTH:
            raise ValueError(f"Identifier {v!r} exceeds {MAX_IDENTIFIER_LENGTH} characters")
        if "\x00" in v:
            raise ValueError("Identifiers must not contain NUL bytes")
        return v

    def log_summary(self) -> dict[str, str | int | bool | None]:
        """
        Generates a configuration summary suitable for logging at startup.

        Only secret ids are included, never secret values.
        """
        return {
            "environment": self.environment,
            "rds_host": self.rds_host,
            "rds_port": self.rds_port,
            "admin_database": self.admin_database,
            "master_user_secret": self.master_user_secret,
            "app_user_secret": self.app_user_secret,
            "cdc_user_secret": self.cdc_user_secret,
            "app_database_name": self.app_database_name,
            "app_schema_name": self.app_schema_name,
            "cdc_publication_name": self.cdc_publication_name,
            "cdc_secret_strict": self.cdc_secret_strict,
        }


_config: BootstrapConfig | None = None


def get_config() -> BootstrapConfig:
    """
    Provides access to the process-wide `BootstrapConfig` instance.

    Returns:
        BootstrapConfig: The configuration, loaded from the environment on the
            first call.

    Raises:
        pydantic.ValidationError: If a required variable is missing or a value
            fails validation.
    """
    global _config
    if _config is None:
        _config = BootstrapConfig()
    return _config


def reset_config() -> None:
    """
    Resets the configuration singleton.

    Intended for tests that change environment variables between cases.
    """
    global _config
    _config = None
