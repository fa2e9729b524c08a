"""Post-deployment verification of an environment's resources."""

from dataclasses import dataclass
from typing import List, Optional

import structlog

from .azure_cli import AzureCli
from .environments import ResourceNames

logger = structlog.get_logger(__name__)

OK = "ok"
MISSING = "missing"
WARNING = "warning"


@dataclass
class VerificationCheck:
    resource: str
    name: str
    status: str
    detail: str = ""


def _check(cli: AzureCli, resource: str, name: str, args: List[str]) -> VerificationCheck:
    if cli.succeeds(args):
        return VerificationCheck(resource, name, OK)
    return VerificationCheck(resource, name, MISSING)


def _backend_checks(cli: AzureCli, names: ResourceNames, rg: str) -> List[VerificationCheck]:
    app = names.backend_app
    base = ["--name", app, "--resource-group", rg]
    if not cli.succeeds(["webapp", "show", *base]):
        return [VerificationCheck("Backend App", app, MISSING)]

    checks = [VerificationCheck("Backend App", app, OK)]
    runtime = cli.query_text(["webapp", "config", "show", *base, "--query", "linuxFxVersion", "-o", "tsv"])
    if runtime and runtime.upper().startswith("PYTHON"):
        checks.append(VerificationCheck("Backend runtime", app, OK, runtime))
    else:
        checks.append(VerificationCheck("Backend runtime", app, WARNING, runtime or "unknown"))

    subnet = cli.query_text(["webapp", "show", *base, "--query", "virtualNetworkSubnetId", "-o", "tsv"])
    if subnet:
        checks.append(VerificationCheck("Backend VNet integration", app, OK, subnet.rsplit("/", 1)[-1]))
    else:
        checks.append(VerificationCheck("Backend VNet integration", app, WARNING, "not integrated"))
    return checks


def resource_count(cli: AzureCli, rg: str) -> Optional[int]:
    text = cli.query_text(["resource", "list", "--resource-group", rg, "--query", "length(@)", "-o", "tsv"])
    try:
        return int(text) if text else None
    except ValueError:
        return None


def verify_infrastructure(cli: AzureCli, names: ResourceNames, rg: str) -> List[VerificationCheck]:
    """Check every expected resource; stops early when the group is missing."""
    group = _check(cli, "Resource Group", rg, ["group", "show", "--name", rg])
    if group.status != OK:
        return [group]

    in_rg = ["--resource-group", rg]
    checks = [
        group,
        _check(cli, "Virtual Network", names.vnet, ["network", "vnet", "show", "--name", names.vnet, *in_rg]),
        _check(
            cli,
            "App Service Plan",
            names.app_service_plan,
            ["appservice", "plan", "show", "--name", names.app_service_plan, *in_rg],
        ),
    ]
    checks.extend(_backend_checks(cli, names, rg))
    checks.extend(
        [
            _check(cli, "Frontend App", names.frontend_app, ["webapp", "show", "--name", names.frontend_app, *in_rg]),
            _check(
                cli,
                "Storage Account",
                names.storage_account,
                ["storage", "account", "show", "--name", names.storage_account, *in_rg],
            ),
            _check(cli, "SQL Server", names.sql_server, ["sql", "server", "show", "--name", names.sql_server, *in_rg]),
            _check(cli, "Key Vault", names.key_vault, ["keyvault", "show", "--name", names.key_vault, *in_rg]),
            _check(
                cli,
                "Application Insights",
                names.app_insights,
                [
                    "resource",
                    "show",
                    "--name",
                    names.app_insights,
                    *in_rg,
                    "--resource-type",
                    "Microsoft.Insights/components",
                ],
            ),
        ]
    )
    missing = [c for c in checks if c.status == MISSING]
    logger.info(f"Verification of {rg}: {len(checks)} checks, {len(missing)} missing")
    return checks
