"""Azure resource provider registration.

A fresh subscription must register the resource providers the templates use
before the first deployment. Registration is asynchronous, so the critical
providers are polled until they report ``Registered``.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

import structlog

from ..azure_cli import AzureCli
from ..console import print_status, print_success, print_warning
from ..timeout_config import Timeouts

logger = structlog.get_logger(__name__)

REQUIRED_PROVIDERS = [
    "Microsoft.Web",
    "Microsoft.Storage",
    "Microsoft.Sql",
    "Microsoft.Network",
    "Microsoft.Insights",
    "Microsoft.OperationalInsights",
    "Microsoft.KeyVault",
    "Microsoft.AlertsManagement",
    "Microsoft.Resources",
    "Microsoft.Authorization",
]

CRITICAL_PROVIDERS = ["Microsoft.AlertsManagement", "Microsoft.Web", "Microsoft.Storage"]

REGISTERED = "Registered"


@dataclass
class RegistrationReport:
    states: Dict[str, str] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.pending


def provider_state(cli: AzureCli, namespace: str) -> str:
    state = cli.query_text(
        ["provider", "show", "--namespace", namespace, "--query", "registrationState", "-o", "tsv"]
    )
    return state or "Unknown"


def register_providers(
    cli: AzureCli,
    providers: Sequence[str] = REQUIRED_PROVIDERS,
    critical: Sequence[str] = CRITICAL_PROVIDERS,
    timeout: int = Timeouts.PROVIDER_WAIT,
    poll_interval: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> RegistrationReport:
    """Register ``providers`` and wait for ``critical`` ones to finish.

    Already-registered providers are skipped. In dry-run mode only the
    current states are reported.
    """
    report = RegistrationReport()

    for namespace in providers:
        state = provider_state(cli, namespace)
        report.states[namespace] = state
        if state == REGISTERED:
            print_success(f"{namespace} already registered")
            continue
        if cli.dry_run:
            print_status(f"{namespace} is {state}; would register")
            continue
        print_status(f"Registering {namespace}...")
        result = cli.run(["provider", "register", "--namespace", namespace])
        if not result.ok:
            print_warning(f"Failed to register {namespace}: {result.stderr.strip()}")
            report.failed.append(namespace)
        else:
            report.states[namespace] = "Registering"

    if cli.dry_run:
        return report

    waiting = [p for p in critical if report.states.get(p) != REGISTERED and p not in report.failed]
    deadline = clock() + timeout
    while waiting:
        for namespace in list(waiting):
            state = provider_state(cli, namespace)
            report.states[namespace] = state
            if state == REGISTERED:
                print_success(f"{namespace} registered")
                waiting.remove(namespace)
        if not waiting:
            break
        if clock() >= deadline:
            print_warning(f"Still registering after {timeout}s: {', '.join(waiting)}")
            report.pending = waiting
            break
        logger.debug(f"Waiting for providers: {', '.join(waiting)}")
        sleep(poll_interval)

    return report

