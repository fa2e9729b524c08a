"""
Centralized timeout configuration for Azure CLI operations.

Every az invocation made by the toolkit runs with a timeout so a hung
provider call fails instead of blocking a deployment indefinitely.

Usage:
    from gpsc_infra.timeout_config import Timeouts

    cli.run(args, timeout=Timeouts.BICEP_DEPLOY)

Environment Variables:
    - GPSC_TIMEOUT_QUICK: Version checks, account lookups (default: 30s)
    - GPSC_TIMEOUT_STANDARD: Resource show/list queries (default: 60s)
    - GPSC_TIMEOUT_BUILD: Template build and validation (default: 300s)
    - GPSC_TIMEOUT_DEPLOY: Template deployments (default: 1800s)
    - GPSC_TIMEOUT_DELETE: Resource deletion (default: 900s)
    - GPSC_TIMEOUT_PROVIDER_WAIT: Provider registration polling (default: 600s)
"""

import os
from typing import Final, Sequence, Union

import structlog

logger = structlog.get_logger(__name__)

MAX_LOGGED_COMMAND = 100


def _timeout_from_env(name: str, fallback: int) -> int:
    """Seconds from ``name`` when it holds a positive integer, else ``fallback``."""
    raw = os.environ.get(name)
    if raw is None:
        return fallback
    try:
        seconds = int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer; keeping {fallback}s")
        return fallback
    if seconds <= 0:
        logger.warning(f"{name}={raw!r} is not positive; keeping {fallback}s")
        return fallback
    return seconds


class Timeouts:
    """Timeout constants for az operations, in seconds.

    Categories:
        - QUICK: version checks, account show/set
        - STANDARD: resource show/list, secret get/set, role assignments
        - BUILD: bicep build, deployment validation
        - DEPLOY: deployment create
        - DELETE: resource and resource group deletion
    """

    QUICK: Final[int] = _timeout_from_env("GPSC_TIMEOUT_QUICK", 30)
    VERSION_CHECK: Final[int] = QUICK
    ACCOUNT: Final[int] = QUICK

    STANDARD: Final[int] = _timeout_from_env("GPSC_TIMEOUT_STANDARD", 60)
    AZ_CLI_QUERY: Final[int] = STANDARD
    SECRET: Final[int] = STANDARD
    ROLE_ASSIGNMENT: Final[int] = STANDARD

    BUILD: Final[int] = _timeout_from_env("GPSC_TIMEOUT_BUILD", 300)
    BICEP_BUILD: Final[int] = BUILD
    BICEP_VALIDATE: Final[int] = BUILD

    DEPLOY: Final[int] = _timeout_from_env("GPSC_TIMEOUT_DEPLOY", 1800)
    BICEP_DEPLOY: Final[int] = DEPLOY

    DELETE: Final[int] = _timeout_from_env("GPSC_TIMEOUT_DELETE", 900)

    PROVIDER_WAIT: Final[int] = _timeout_from_env("GPSC_TIMEOUT_PROVIDER_WAIT", 600)


def log_timeout_event(
    operation: str,
    timeout_value: int,
    command: Union[str, Sequence[str], None] = None,
    level: str = "warning",
) -> None:
    """Record that ``operation`` gave up after ``timeout_value`` seconds.

    Long commands are shortened so one hung call does not flood the log.
    """
    message = f"{operation} exceeded its {timeout_value}s timeout"
    if command:
        text = command if isinstance(command, str) else " ".join(command)
        if len(text) > MAX_LOGGED_COMMAND:
            text = text[: MAX_LOGGED_COMMAND - 3] + "..."
        message += f" ({text})"
    getattr(logger, level, logger.warning)(message)
