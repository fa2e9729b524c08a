"""Catalogue of deployable infrastructure modules.

Each module names its Bicep template (relative to the IaC root), the modules
it depends on, how to detect an existing deployment, and which outputs to
show after a successful run.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..environments import ResourceNames
from ..exceptions import GpscInfraError

ExistenceCheck = Callable[[ResourceNames, str], List[str]]

TEMPLATE_KIND = "template"
ROLE_ASSIGNMENT_KIND = "role-assignments"


@dataclass(frozen=True)
class OutputField:
    """One deployment output shown in the post-deployment summary."""

    key: str
    label: str


@dataclass(frozen=True)
class ModuleSpec:
    """Static description of a deployable module."""

    name: str
    title: str
    template: str = ""
    kind: str = TEMPLATE_KIND
    depends_on: Tuple[str, ...] = ()
    parameters_required: bool = False
    creates_resource_group: bool = False
    needs_sql_password: bool = False
    existing_label: str = ""
    existing: Optional[ExistenceCheck] = None
    outputs: Tuple[OutputField, ...] = ()
    summary_sections: Tuple[str, ...] = ("securitySummary", "privateEndpointRequirements")
    tags: Dict[str, str] = field(default_factory=dict)

    def existing_name(self, names: ResourceNames) -> str:
        return getattr(names, self.existing_label) if self.existing_label else ""


def _show(*words: str) -> Callable[[str, str], List[str]]:
    def build(name: str, resource_group: str) -> List[str]:
        return [*words, "--name", name, "--resource-group", resource_group]

    return build


_vnet_show = _show("network", "vnet", "show")
_storage_show = _show("storage", "account", "show")
_sql_show = _show("sql", "server", "show")
_kv_show = _show("keyvault", "show")
_insights_show = _show("resource", "show")
_plan_show = _show("appservice", "plan", "show")
_webapp_show = _show("webapp", "show")


def _app_insights_lookup(names: ResourceNames, rg: str) -> List[str]:
    return _insights_show(names.app_insights, rg) + [
        "--resource-type",
        "Microsoft.Insights/components",
    ]


MODULES: Dict[str, ModuleSpec] = {
    spec.name: spec
    for spec in (
        ModuleSpec(
            name="vnet",
            title="Virtual Network",
            template="modules/network/vnet/main.bicep",
            parameters_required=True,
            creates_resource_group=True,
            existing_label="vnet",
            existing=lambda names, rg: _vnet_show(names.vnet, rg),
            outputs=(
                OutputField("vnetName", "VNet Name"),
                OutputField("vnetId", "VNet ID"),
                OutputField("appServiceSubnetId", "App Service Subnet"),
                OutputField("privateEndpointSubnetId", "Private Endpoint Subnet"),
            ),
            tags={"Module": "VNet", "SecurityLevel": "Private-Only"},
        ),
        ModuleSpec(
            name="key-vault",
            title="Key Vault",
            template="modules/security/key-vault/main.bicep",
            depends_on=("vnet",),
            existing_label="key_vault",
            existing=lambda names, rg: _kv_show(names.key_vault, rg),
            outputs=(
                OutputField("keyVaultName", "Key Vault Name"),
                OutputField("keyVaultUri", "Key Vault URI"),
                OutputField("keyVaultId", "Key Vault ID"),
            ),
        ),
        ModuleSpec(
            name="storage",
            title="Storage Account",
            template="modules/storage/main.bicep",
            depends_on=("vnet",),
            existing_label="storage_account",
            existing=lambda names, rg: _storage_show(names.storage_account, rg),
            outputs=(
                OutputField("storageAccountName", "Storage Account"),
                OutputField("storageAccountId", "Storage Account ID"),
                OutputField("containerNames", "Containers"),
            ),
        ),
        ModuleSpec(
            name="database",
            title="SQL Database",
            template="modules/database/main.bicep",
            depends_on=("vnet", "key-vault"),
            needs_sql_password=True,
            existing_label="sql_server",
            existing=lambda names, rg: _sql_show(names.sql_server, rg),
            outputs=(
                OutputField("sqlServerName", "SQL Server"),
                OutputField("sqlServerFqdn", "SQL Server FQDN"),
                OutputField("sqlDatabaseName", "Database"),
                OutputField("sqlServerPrincipalId", "Server Identity"),
            ),
        ),
        ModuleSpec(
            name="app-insights",
            title="Application Insights",
            template="modules/monitoring/application-insights/main.bicep",
            depends_on=("vnet",),
            existing_label="app_insights",
            existing=_app_insights_lookup,
            outputs=(
                OutputField("appInsightsName", "Application Insights"),
                OutputField("logAnalyticsName", "Log Analytics Workspace"),
                OutputField("appInsightsConnectionString", "Connection String"),
            ),
        ),
        ModuleSpec(
            name="app-service",
            title="App Service (plan, frontend, backend)",
            template="modules/compute/app-service/main.bicep",
            depends_on=("vnet", "storage", "database", "app-insights", "key-vault"),
            parameters_required=True,
            existing_label="app_service_plan",
            existing=lambda names, rg: _plan_show(names.app_service_plan, rg),
            outputs=(
                OutputField("appServicePlanName", "App Service Plan"),
                OutputField("frontendAppName", "Frontend App"),
                OutputField("backendAppName", "Backend App"),
                OutputField("frontendUrl", "Frontend URL"),
                OutputField("backendUrl", "Backend URL"),
            ),
            summary_sections=("securitySummary", "appServiceConfiguration"),
        ),
        ModuleSpec(
            name="backend",
            title="Backend App Service",
            template="modules/compute/app-service/main-backend.bicep",
            depends_on=("vnet",),
            parameters_required=True,
            existing_label="backend_app",
            existing=lambda names, rg: _webapp_show(names.backend_app, rg),
            outputs=(
                OutputField("backendAppName", "Backend App"),
                OutputField("appServicePlanName", "App Service Plan"),
                OutputField("backendUrl", "Backend URL"),
            ),
        ),
        ModuleSpec(
            name="frontend",
            title="Frontend App Service",
            template="modules/compute/app-service/frontend/main-frontend.bicep",
            depends_on=("vnet",),
            parameters_required=True,
            existing_label="frontend_app",
            existing=lambda names, rg: _webapp_show(names.frontend_app, rg),
            outputs=(
                OutputField("frontendAppName", "Frontend App"),
                OutputField("appServicePlanName", "App Service Plan"),
                OutputField("frontendUrl", "Frontend URL"),
            ),
        ),
        ModuleSpec(
            name="app-gateway",
            title="Application Gateway",
            template="modules/network/application-gateway/main.bicep",
            depends_on=("vnet", "app-service"),
            parameters_required=True,
            existing_label="app_gateway",
            existing=lambda names, rg: _show("network", "application-gateway", "show")(
                names.app_gateway, rg
            ),
            outputs=(
                OutputField("applicationGatewayName", "Application Gateway"),
                OutputField("applicationGatewayUrl", "Public URL"),
            ),
        ),
        ModuleSpec(
            name="iam",
            title="Role Assignments",
            kind=ROLE_ASSIGNMENT_KIND,
            depends_on=("app-service", "key-vault", "storage", "app-gateway"),
        ),
        ModuleSpec(
            name="stack",
            title="Complete GPS Reporting stack",
            template="deployments/gpscreports/main.bicep",
            parameters_required=True,
            outputs=(
                OutputField("frontendUrl", "Frontend URL"),
                OutputField("backendUrl", "Backend URL"),
                OutputField("applicationGatewayUrl", "Application Gateway URL"),
                OutputField("sqlServerName", "SQL Server"),
                OutputField("sqlDatabaseName", "Database"),
                OutputField("storageAccountName", "Storage Account"),
            ),
        ),
    )
}

# Modules that make up a module-by-module full deployment.
STACK_MODULES = (
    "vnet",
    "key-vault",
    "storage",
    "database",
    "app-insights",
    "app-service",
    "app-gateway",
    "iam",
)

DEPLOYABLE = [name for name, spec in MODULES.items() if spec.kind == TEMPLATE_KIND]


def get_module(name: str) -> ModuleSpec:
    try:
        return MODULES[name]
    except KeyError:
        raise GpscInfraError(
            f"Unknown module '{name}'",
            error_code="UNKNOWN_MODULE",
            recovery_suggestion=f"Choose one of: {', '.join(sorted(MODULES))}",
        ) from None
