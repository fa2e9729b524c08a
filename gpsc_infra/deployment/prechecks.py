"""Module-specific checks run before a template is validated or deployed.

Checks raise PreconditionError for gaps that would make the deployment fail
and print a warning for gaps that only leave the result less secure or
incomplete.
"""

from typing import Callable, Dict, List

from ..console import print_success, print_warning
from ..exceptions import PreconditionError
from ..preconditions import subnet_delegation, subnet_exists
from .context import DeployContext

WEB_DELEGATION = "Microsoft.Web/serverFarms"

Precheck = Callable[[DeployContext], None]


def _vnet_exists(ctx: DeployContext) -> bool:
    return ctx.cli.succeeds(
        ["network", "vnet", "show", "--name", ctx.names.vnet, "--resource-group", ctx.resource_group]
    )


def require_app_subnet(ctx: DeployContext) -> None:
    """VNet and the App Service subnet must exist; delegation is advisory."""
    names = ctx.names
    if not _vnet_exists(ctx):
        raise PreconditionError(
            f"VNet '{names.vnet}' not found",
            resource=names.vnet,
            recovery_suggestion="Deploy the vnet module first",
        )
    if not subnet_exists(ctx.cli, ctx.resource_group, names.vnet, names.app_service_subnet):
        raise PreconditionError(
            f"Subnet '{names.app_service_subnet}' not found in '{names.vnet}'",
            resource=names.app_service_subnet,
        )
    delegation = subnet_delegation(
        ctx.cli, ctx.resource_group, names.vnet, names.app_service_subnet
    )
    if delegation == WEB_DELEGATION:
        print_success(f"Subnet {names.app_service_subnet} is delegated to {WEB_DELEGATION}")
    else:
        print_warning(
            f"Subnet {names.app_service_subnet} is not delegated to {WEB_DELEGATION} "
            f"(found: {delegation or 'none'}); VNet integration may fail"
        )


def _plan_exists(ctx: DeployContext) -> bool:
    return ctx.cli.succeeds(
        [
            "appservice",
            "plan",
            "show",
            "--name",
            ctx.names.app_service_plan,
            "--resource-group",
            ctx.resource_group,
        ]
    )


def require_existing_plan_unless_deployed(ctx: DeployContext) -> None:
    if ctx.deploy_plan:
        return
    if not _plan_exists(ctx):
        raise PreconditionError(
            f"App Service Plan '{ctx.names.app_service_plan}' not found",
            resource=ctx.names.app_service_plan,
            recovery_suggestion="Deploy with --deploy-plan to create it",
        )


def require_existing_plan(ctx: DeployContext) -> None:
    if not _plan_exists(ctx):
        raise PreconditionError(
            f"App Service Plan '{ctx.names.app_service_plan}' not found",
            resource=ctx.names.app_service_plan,
            recovery_suggestion="Deploy the backend module with --deploy-plan first",
        )


def warn_missing_backend(ctx: DeployContext) -> None:
    found = ctx.cli.succeeds(
        ["webapp", "show", "--name", ctx.names.backend_app, "--resource-group", ctx.resource_group]
    )
    if not found:
        print_warning(
            f"Backend app '{ctx.names.backend_app}' not found; the frontend will "
            "deploy but cannot reach its API yet"
        )


def require_vnet(ctx: DeployContext) -> None:
    if not _vnet_exists(ctx):
        raise PreconditionError(
            f"VNet '{ctx.names.vnet}' not found",
            resource=ctx.names.vnet,
            recovery_suggestion="Deploy the vnet module first",
        )


def warn_missing_private_network(ctx: DeployContext) -> None:
    """Private-only resources need the PE subnet before they are reachable."""
    names = ctx.names
    if not _vnet_exists(ctx):
        print_warning(
            f"VNet '{names.vnet}' not found; private endpoints cannot be created yet"
        )
        return
    if not subnet_exists(ctx.cli, ctx.resource_group, names.vnet, names.private_endpoint_subnet):
        print_warning(
            f"Private endpoint subnet '{names.private_endpoint_subnet}' not found"
        )


PRECHECKS: Dict[str, List[Precheck]] = {
    "key-vault": [warn_missing_private_network],
    "storage": [warn_missing_private_network],
    "database": [warn_missing_private_network],
    "app-insights": [warn_missing_private_network],
    "app-service": [require_app_subnet],
    "backend": [require_app_subnet, require_existing_plan_unless_deployed],
    "frontend": [require_app_subnet, require_existing_plan, warn_missing_backend],
    "app-gateway": [require_vnet],
}


def run_prechecks(module: str, ctx: DeployContext) -> None:
    for check in PRECHECKS.get(module, []):
        check(ctx)
