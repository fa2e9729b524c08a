"""Cleanup plans for each infrastructure module.

Every plan deletes dependents before the resources they rely on. The
resource group itself is only ever deleted by ``resource_group_plan`` with
``delete_group=True``.
"""

from typing import Callable, Dict, List

import structlog

from ..deployment.bicep_deployer import list_running_deployments
from ..environments import ResourceNames
from ..exceptions import GpscInfraError, PreconditionError
from ..prompts import DeletionConfirmation
from .cleaner import CleanupPlan, CleanupTarget, ResourceCleaner, resource_name

logger = structlog.get_logger(__name__)

VNET_TYPES = [
    "Microsoft.Network/virtualNetworks",
    "Microsoft.Network/networkSecurityGroups",
    "Microsoft.Network/routeTables",
    "Microsoft.Network/publicIPAddresses",
    "Microsoft.Network/networkInterfaces",
]

MONITORING_TYPES = [
    "Microsoft.OperationsManagement/solutions",
    "Microsoft.Insights/components",
    "Microsoft.OperationalInsights/workspaces",
]

RESOURCE_GROUP_TYPES = [
    "Microsoft.Network/applicationGateways",
    "Microsoft.Web/sites",
    "Microsoft.Web/serverfarms",
    "Microsoft.Sql/servers",
]

# Deleted after everything else in a resource-group cleanup.
LAST_TYPES = [
    "Microsoft.Network/virtualNetworks",
    "Microsoft.Network/networkSecurityGroups",
]

PlanBuilder = Callable[..., CleanupPlan]


def _exists(cleaner: ResourceCleaner, args: List[str]) -> bool:
    return cleaner.cli.succeeds(args)


def vnet_plan(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    return CleanupPlan(
        title="VNet cleanup",
        resource_group=cleaner.resource_group,
        targets=cleaner.targets_for_types(VNET_TYPES),
        confirmation=DeletionConfirmation(
            "Delete the VNet and its network resources?",
            warnings=["Resources deployed into these subnets will lose connectivity."],
        ),
    )


def storage_plan(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    account = names.storage_account
    rg = cleaner.resource_group
    targets = []
    if _exists(cleaner, ["storage", "account", "show", "--name", account, "--resource-group", rg]):
        targets.append(
            CleanupTarget(
                f"Storage Account {account}",
                ["storage", "account", "delete", "--name", account, "--resource-group", rg, "--yes"],
                "Microsoft.Storage/storageAccounts",
            )
        )
    return CleanupPlan(
        title="Storage cleanup",
        resource_group=rg,
        targets=targets,
        confirmation=DeletionConfirmation(
            "ALL blobs, files, queues and tables will be PERMANENTLY deleted.",
            phrase="DELETE-ALL-STORAGE-DATA",
            final_yes=True,
        ),
    )


def database_plan(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    rg = cleaner.resource_group
    server = names.sql_server
    database = names.sql_database
    targets = []
    if _exists(cleaner, ["sql", "server", "show", "--name", server, "--resource-group", rg]):
        if _exists(
            cleaner,
            ["sql", "db", "show", "--name", database, "--server", server, "--resource-group", rg],
        ):
            targets.append(
                CleanupTarget(
                    f"SQL Database {database}",
                    [
                        "sql",
                        "db",
                        "delete",
                        "--name",
                        database,
                        "--server",
                        server,
                        "--resource-group",
                        rg,
                        "--yes",
                    ],
                    "Microsoft.Sql/servers/databases",
                )
            )
        targets.append(
            CleanupTarget(
                f"SQL Server {server}",
                ["sql", "server", "delete", "--name", server, "--resource-group", rg, "--yes"],
                "Microsoft.Sql/servers",
            )
        )
    return CleanupPlan(
        title="Database cleanup",
        resource_group=rg,
        targets=targets,
        confirmation=DeletionConfirmation(
            "ALL database data will be PERMANENTLY lost.",
            phrase="DELETE-ALL-DATABASE-DATA",
            final_yes=True,
        ),
    )


def app_insights_plan(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    return CleanupPlan(
        title="Monitoring cleanup",
        resource_group=cleaner.resource_group,
        targets=cleaner.targets_for_types(MONITORING_TYPES),
        confirmation=DeletionConfirmation(
            "All telemetry, logs and alert history will be deleted.",
            phrase="DELETE-MONITORING",
        ),
    )


def key_vault_plan(
    cleaner: ResourceCleaner, names: ResourceNames, purge: bool = False, **_: object
) -> CleanupPlan:
    """Delete the vault (soft delete) and optionally purge it.

    Purging is skipped when purge protection is enabled; a vault that is
    already soft-deleted is purged when ``purge`` is set.
    """
    rg = cleaner.resource_group
    vault = names.key_vault
    targets = []
    details = cleaner.cli.query_json(
        ["keyvault", "show", "--name", vault, "--resource-group", rg, "-o", "json"]
    )
    purge_protected = False
    if isinstance(details, dict):
        purge_protected = bool(
            (details.get("properties") or {}).get("enablePurgeProtection") or False
        )
        targets.append(
            CleanupTarget(
                f"Key Vault {vault}",
                ["keyvault", "delete", "--name", vault, "--resource-group", rg],
                "Microsoft.KeyVault/vaults",
            )
        )
        can_purge = True
    else:
        deleted = cleaner.cli.query_json(
            ["keyvault", "list-deleted", "--query", f"[?name=='{vault}']", "-o", "json"]
        )
        can_purge = bool(deleted)

    if purge and can_purge:
        if purge_protected:
            logger.warning(f"Purge protection is enabled on {vault}; it cannot be purged")
        else:
            targets.append(
                CleanupTarget(
                    f"Purge Key Vault {vault}",
                    ["keyvault", "purge", "--name", vault],
                    "Microsoft.KeyVault/deletedVaults",
                )
            )

    confirmation = (
        DeletionConfirmation(
            "The vault and every secret in it will be PERMANENTLY destroyed.",
            phrase="DELETE-KEY-VAULT-PERMANENTLY",
        )
        if purge
        else DeletionConfirmation(
            "Delete the Key Vault? It stays recoverable during the soft-delete retention period."
        )
    )
    return CleanupPlan("Key Vault cleanup", rg, targets, confirmation)


def _webapp_target(name: str, rg: str) -> CleanupTarget:
    return CleanupTarget(
        f"Web App {name}",
        ["webapp", "delete", "--name", name, "--resource-group", rg],
        "Microsoft.Web/sites",
    )


def _plan_target(name: str, rg: str) -> CleanupTarget:
    return CleanupTarget(
        f"App Service Plan {name}",
        ["appservice", "plan", "delete", "--name", name, "--resource-group", rg, "--yes"],
        "Microsoft.Web/serverfarms",
    )


def _webapp_exists(cleaner: ResourceCleaner, name: str) -> bool:
    return _exists(cleaner, ["webapp", "show", "--name", name, "--resource-group", cleaner.resource_group])


def _plan_exists(cleaner: ResourceCleaner, name: str) -> bool:
    return _exists(
        cleaner, ["appservice", "plan", "show", "--name", name, "--resource-group", cleaner.resource_group]
    )


def frontend_plan(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    rg = cleaner.resource_group
    targets = []
    if _webapp_exists(cleaner, names.frontend_app):
        targets.append(_webapp_target(names.frontend_app, rg))
    return CleanupPlan(
        "Frontend cleanup",
        rg,
        targets,
        DeletionConfirmation("Delete the frontend App Service? The App Service Plan is kept."),
    )


def _frontend_uses_plan(cleaner: ResourceCleaner, names: ResourceNames) -> bool:
    plan_id = cleaner.cli.query_text(
        [
            "webapp",
            "show",
            "--name",
            names.frontend_app,
            "--resource-group",
            cleaner.resource_group,
            "--query",
            "appServicePlanId",
            "-o",
            "tsv",
        ]
    )
    return bool(plan_id) and resource_name(plan_id).lower() == names.app_service_plan.lower()


def backend_plan(
    cleaner: ResourceCleaner, names: ResourceNames, delete_plan: bool = False, **_: object
) -> CleanupPlan:
    """Delete the backend app and, when asked, its App Service Plan.

    Raises:
        PreconditionError: If the plan should be deleted but the frontend
            still runs on it
    """
    rg = cleaner.resource_group
    targets = []
    if _webapp_exists(cleaner, names.backend_app):
        targets.append(_webapp_target(names.backend_app, rg))
    if delete_plan and _plan_exists(cleaner, names.app_service_plan):
        if _frontend_uses_plan(cleaner, names):
            raise PreconditionError(
                f"App Service Plan '{names.app_service_plan}' is still used by "
                f"'{names.frontend_app}'",
                resource=names.app_service_plan,
                recovery_suggestion="Clean up the frontend first or omit --delete-plan",
            )
        targets.append(_plan_target(names.app_service_plan, rg))
    return CleanupPlan(
        "Backend cleanup",
        rg,
        targets,
        DeletionConfirmation("Delete the backend App Service?"),
    )


def app_service_plan_cleanup(cleaner: ResourceCleaner, names: ResourceNames, **_: object) -> CleanupPlan:
    rg = cleaner.resource_group
    targets = []
    for app in (names.frontend_app, names.backend_app):
        if _webapp_exists(cleaner, app):
            targets.append(_webapp_target(app, rg))
    if _plan_exists(cleaner, names.app_service_plan):
        targets.append(_plan_target(names.app_service_plan, rg))
    return CleanupPlan(
        "App Service cleanup",
        rg,
        targets,
        DeletionConfirmation("Delete both App Services and their App Service Plan?"),
    )


def _is_child(resource_id: str, parents: List[str]) -> bool:
    lowered = resource_id.lower()
    return any(lowered.startswith(parent.lower() + "/") for parent in parents)


def resource_group_plan(
    cleaner: ResourceCleaner, names: ResourceNames, delete_group: bool = False, **_: object
) -> CleanupPlan:
    """Empty the resource group, or delete it outright with ``delete_group``."""
    rg = cleaner.resource_group
    if delete_group:
        return CleanupPlan(
            title="Resource group deletion",
            resource_group=rg,
            targets=[
                CleanupTarget(
                    f"Resource Group {rg}",
                    ["group", "delete", "--name", rg, "--yes", "--no-wait"],
                    "Microsoft.Resources/resourceGroups",
                )
            ],
            confirmation=DeletionConfirmation(
                f"The resource group '{rg}' and EVERYTHING in it will be deleted.",
                phrase="DELETE",
            ),
            deletes_resource_group=True,
        )

    targets = [
        CleanupTarget(
            f"Cancel deployment {name}",
            ["deployment", "group", "cancel", "--resource-group", rg, "--name", name],
            "Microsoft.Resources/deployments",
        )
        for name in list_running_deployments(cleaner.cli, rg)
    ]
    ordered = cleaner.targets_for_types(RESOURCE_GROUP_TYPES)
    targets.extend(ordered)

    covered = [t.delete_args[-1] for t in ordered]
    remaining = [
        r
        for r in cleaner.list_resources()
        if r.get("id") and r["id"] not in covered and not _is_child(r["id"], covered)
    ]

    def last(resource: Dict[str, str]) -> int:
        rtype = resource.get("type", "")
        return LAST_TYPES.index(rtype) + 1 if rtype in LAST_TYPES else 0

    for resource in sorted(remaining, key=last):
        if _is_child(resource["id"], [r["id"] for r in remaining if r is not resource]):
            continue
        targets.append(cleaner.generic_target(resource["id"], resource.get("type", "")))

    return CleanupPlan(
        title="Resource group cleanup",
        resource_group=rg,
        targets=targets,
        confirmation=DeletionConfirmation(
            f"Delete every resource in '{rg}'? The resource group itself is kept."
        ),
    )


PLAN_BUILDERS: Dict[str, PlanBuilder] = {
    "vnet": vnet_plan,
    "storage": storage_plan,
    "database": database_plan,
    "app-insights": app_insights_plan,
    "key-vault": key_vault_plan,
    "frontend": frontend_plan,
    "backend": backend_plan,
    "app-service": app_service_plan_cleanup,
    "resource-group": resource_group_plan,
}


def build_plan(
    module: str,
    cleaner: ResourceCleaner,
    names: ResourceNames,
    purge: bool = False,
    delete_plan: bool = False,
    delete_group: bool = False,
) -> CleanupPlan:
    try:
        builder = PLAN_BUILDERS[module]
    except KeyError:
        raise GpscInfraError(
            f"No cleanup available for '{module}'", error_code="UNKNOWN_MODULE"
        ) from None
    return builder(
        cleaner, names, purge=purge, delete_plan=delete_plan, delete_group=delete_group
    )


def cleanup_modules() -> List[str]:
    return list(PLAN_BUILDERS)

