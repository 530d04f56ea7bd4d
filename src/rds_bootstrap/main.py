"""
Entry points for running the bootstrap.

The bootstrap is a one-shot deployment step. It is invoked in one of two ways:

1.  **Command line**: `rds-bootstrap` (or `python -m rds_bootstrap`) from a
    pipeline job or an operator's shell. The summary message is printed and
    the exit status reports success.
2.  **Function runtime**: `rds_bootstrap.main.handler` as the handler of a
    deploy-time function. The return value is `{"message": ...}`.

Both build the process-wide collaborators once, through `run_bootstrap`, and
inject them into `orchestrator.bootstrap`.
"""

from __future__ import annotations

import sys
from typing import Any

import psycopg2
from botocore.exceptions import BotoCoreError
from pydantic import ValidationError

from .config import get_config
from .logger import log_event
from .orchestrator import bootstrap
from .secrets import SecretResolver


def run_bootstrap() -> dict[str, str]:
    """
    Loads configuration, builds the Secrets Manager client and runs the bootstrap.

    Returns:
        dict[str, str]: `{"message": ...}` summarizing the run.
    """
    config = get_config()
    resolver = SecretResolver(region_name=config.aws_region)
    return bootstrap(config, resolver, psycopg2.connect).as_response()


def handler(event: Any = None, context: Any = None) -> dict[str, str]:
    """Function-runtime handler. The event and context are not used."""
    return run_bootstrap()


def main() -> int:
    """
    Runs the bootstrap from the command line.

    Returns:
        int: 0 on success, 1 if the bootstrap failed.
    """
    try:
        result = run_bootstrap()
    except (ValidationError, BotoCoreError) as exc:
        # raised while building collaborators, before the orchestrator logs anything
        log_event("ERROR", "bootstrap_setup_failed", error_type=type(exc).__name__, error=str(exc))
        return 1
    except Exception:
        # already logged as bootstrap_failed
        return 1
    print(result["message"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
