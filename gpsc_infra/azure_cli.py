"""Azure CLI command runner.

Every provider call made by the toolkit goes through ``AzureCli.run`` so that
timeouts, secret redaction, failure wrapping and the dry-run guard apply
uniformly.

Philosophy:
- Subprocess calls only, no Azure SDK clients
- A dry-run CLI refuses mutating commands instead of trusting callers
- Failed queries return None; failed mandatory commands raise
"""

import json
import re
import subprocess
from dataclasses import dataclass
from itertools import takewhile
from typing import Any, List, Optional, Sequence

import structlog

from .exceptions import (
    AzureCliNotFoundError,
    DryRunViolationError,
    ProviderTimeoutError,
    wrap_cli_failure,
)
from .timeout_config import Timeouts, log_timeout_event

logger = structlog.get_logger(__name__)

# Command-group verbs that change cloud state.
MUTATING_VERBS = frozenset(
    {
        "add",
        "assign",
        "cancel",
        "create",
        "delete",
        "import",
        "install",
        "purge",
        "recover",
        "register",
        "remove",
        "restart",
        "restore",
        "set",
        "start",
        "stop",
        "unregister",
        "update",
        "upgrade",
    }
)

# Mutating-looking commands that only touch local CLI state.
LOCAL_ONLY_COMMANDS = frozenset({("account", "set")})

SECRET_FLAGS = frozenset({"--value", "--password", "--admin-password", "-p"})
SECRET_KEY_PATTERN = re.compile(r"(password|secret|connectionstring)", re.IGNORECASE)
REDACTED = "***REDACTED***"


def command_path(args: Sequence[str]) -> tuple:
    """Return the positional command words, e.g. ``("sql", "server", "show")``."""
    return tuple(takewhile(lambda token: not token.startswith("-"), args))


def is_mutating(args: Sequence[str]) -> bool:
    """Return True when ``args`` would change resources in Azure."""
    path = command_path(args)
    if path[:2] in LOCAL_ONLY_COMMANDS:
        return False
    return any(word in MUTATING_VERBS for word in path)


def redact(args: Sequence[str]) -> List[str]:
    """Mask secret values in an argument list before it is logged or raised."""
    redacted: List[str] = []
    mask_next = False
    for token in args:
        if mask_next:
            redacted.append(REDACTED)
            mask_next = False
            continue
        if token in SECRET_FLAGS:
            mask_next = True
            redacted.append(token)
            continue
        key, sep, _ = token.partition("=")
        if sep and SECRET_KEY_PATTERN.search(key) and not key.startswith("-"):
            redacted.append(f"{key}={REDACTED}")
        else:
            redacted.append(token)
    return redacted


@dataclass
class AzResult:
    """Outcome of one az invocation."""

    args: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        return self.stdout.strip()

    def json(self) -> Any:
        """Parse stdout as JSON; empty output parses as None."""
        if not self.stdout.strip():
            return None
        return json.loads(self.stdout)


class AzureCli:
    """Runs az commands with timeouts and an optional dry-run guard."""

    def __init__(self, dry_run: bool = False, executable: str = "az"):
        self.dry_run = dry_run
        self.executable = executable

    def run(
        self,
        args: Sequence[str],
        timeout: int = Timeouts.AZ_CLI_QUERY,
        operation: Optional[str] = None,
        check: bool = False,
    ) -> AzResult:
        """Run ``az <args>``.

        Args:
            args: Arguments after the executable name
            timeout: Seconds before the call is abandoned
            operation: Name used in timeout logging (defaults to the command path)
            check: Raise a wrapped AzureError when the command fails

        Raises:
            DryRunViolationError: Mutating command requested in dry-run mode
            AzureCliNotFoundError: The az executable is missing
            ProviderTimeoutError: The command exceeded ``timeout``
        """
        args = list(args)
        safe_args = redact(args)
        if self.dry_run and is_mutating(args):
            raise DryRunViolationError(safe_args)

        operation = operation or "_".join(command_path(args)) or "az"
        logger.debug(f"Running: {self.executable} {' '.join(safe_args)}")

        try:
            completed = self._execute([self.executable, *args], timeout)
        except FileNotFoundError as e:
            raise AzureCliNotFoundError(self.executable, cause=e) from e
        except subprocess.TimeoutExpired as e:
            log_timeout_event(operation, timeout, [self.executable, *safe_args])
            raise ProviderTimeoutError(
                f"az {' '.join(command_path(args))} timed out after {timeout} seconds",
                timeout_value=timeout,
                command=[self.executable, *safe_args],
            ) from e

        result = AzResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.ok:
            logger.debug(
                f"Command failed ({result.returncode}): {operation}: {result.stderr.strip()}"
            )
            if check:
                raise wrap_cli_failure(safe_args, result.returncode, result.stderr)
        return result

    def _execute(
        self, cmd: List[str], timeout: int
    ) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )

    def succeeds(self, args: Sequence[str], timeout: int = Timeouts.AZ_CLI_QUERY) -> bool:
        """True when the command exits 0, the ``az ... &> /dev/null`` check."""
        return self.run(args, timeout=timeout).ok

    def query_text(
        self, args: Sequence[str], timeout: int = Timeouts.AZ_CLI_QUERY
    ) -> Optional[str]:
        """Stripped stdout of a successful command, otherwise None."""
        result = self.run(args, timeout=timeout)
        if not result.ok or not result.text:
            return None
        return result.text

    def query_json(
        self, args: Sequence[str], timeout: int = Timeouts.AZ_CLI_QUERY
    ) -> Any:
        """Parsed JSON of a successful command, otherwise None."""
        result = self.run(args, timeout=timeout)
        if not result.ok:
            return None
        try:
            return result.json()
        except json.JSONDecodeError:
            logger.warning(f"Unparseable JSON from az {' '.join(command_path(args))}")
            return None
