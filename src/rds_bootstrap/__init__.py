"""
RDS Bootstrap Package.

This package brings a PostgreSQL (RDS/Aurora) cluster into the state an
application expects before its first deployment: a database, a schema, an
application role with its grants and, optionally, a change-data-capture (CDC)
role with a logical replication publication.

Key modules include:
-   `config`: Environment-driven configuration.
-   `secrets`: Resolution of credential secrets from AWS Secrets Manager.
-   `connection`: Scoped database sessions with statement logging.
-   `provisioner`: Existence-guarded creation of databases and roles.
-   `grants`: The fixed grant sequences for the service and CDC roles.
-   `orchestrator`: The end-to-end bootstrap workflow.
"""

from importlib import metadata
from typing import Final

# Canonical name reported in every log line emitted by this package.
SERVICE_NAME: Final[str] = "rds-bootstrap"

try:
    __version__ = metadata.version("rds-bootstrap")
except metadata.PackageNotFoundError:  # pragma: no cover
    # Running from a source checkout without an install.
    __version__ = "0.0.0"

__all__ = ["SERVICE_NAME", "__version__"]
