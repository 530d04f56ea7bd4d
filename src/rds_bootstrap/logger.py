"""
Structured JSON Logging Utilities for the bootstrap workflow.

Every line written by the bootstrap is a single JSON object on stdout. The
bootstrap usually runs inside a deployment pipeline or a short-lived function,
so its log stream is the only record of which statements were issued against
which database. Structured lines make it possible to filter that record by
`database`, by `msg` (e.g. every `execute_statement`) or by `level`.

Every record is enriched with `service`, `env` and `version` so that lines
from several environments can be told apart once aggregated.
"""

from __future__ import annotations

import json
import os
import sys
from datetime import UTC, datetime
from typing import Any

from . import SERVICE_NAME, __version__

_ENV = os.getenv("BOOTSTRAP_ENV", "local")
_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _normalize_level(level: str) -> str:
    """
    Ensures that a log level is a valid, uppercase string.

    Args:
        level: The log level string to be normalized.

    Returns:
        The normalized, uppercase log level string, or `INFO` if the level
        is not recognized.
    """
    level_upper = level.upper()
    return level_upper if level_upper in _VALID_LEVELS else "INFO"


def log_event(level: str, msg: str, **fields: Any) -> None:
    """
    Emits a structured, single-line JSON log entry to standard output.

    Standard Fields Automatically Included:
    - `ts`: An ISO 8601 timestamp in UTC.
    - `service`: The name of this package ("rds-bootstrap").
    - `env`: The deployment environment (`BOOTSTRAP_ENV`).
    - `version`: The installed version of the package.
    - `level`: The normalized log severity.
    - `msg`: The event name.

    Example Usage:
    ```python
    log_event("INFO", "execute_statement", database="myapp",
              statement="CREATE SCHEMA IF NOT EXISTS myapp_user")
    ```

    Args:
        level: The severity level of the log (e.g., "INFO", "ERROR").
        msg: The event name.
        **fields: Extra key-value pairs added to the root of the JSON object.
    """
    record = {
        "ts": datetime.now(UTC).isoformat(),
        "service": SERVICE_NAME,
        "env": _ENV,
        "version": __version__,
        "level": _normalize_level(level),
        "msg": msg,
    }
    record.update(fields)
    # flush so lines are not lost when a function runtime freezes the process
    print(json.dumps(record, separators=(",", ":"), default=str), file=sys.stdout, flush=True)
