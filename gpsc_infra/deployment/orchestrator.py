"""Full-stack deployment across all modules.

Modes:
- setup: register resource providers
- validate: validate every module template without changing anything
- deploy: validate every template, register providers, then deploy modules
  in dependency order
- clean-deploy: validate, empty the resource group (keeping it), then deploy
"""

from dataclasses import replace
from typing import Iterable, List, Optional

import structlog

from ..azure_cli import AzureCli
from ..cleanup import ResourceCleaner, build_plan, run_cleanup
from ..console import print_error, print_header, print_info, print_success, print_table
from ..exceptions import (
    DeploymentError,
    GpscInfraError,
    ResourceGroupNotFoundError,
    RoleAssignmentError,
)
from ..iam import RoleAssignment, app_identity_assignments, ensure_role_assignment
from ..preconditions import resource_group_exists, select_subscription
from .context import DeployContext
from .modules import ROLE_ASSIGNMENT_KIND, get_module
from .plan import deployment_order, deployment_tiers
from .providers import register_providers
from .workflow import (
    DeploymentResult,
    deploy_module,
    ensure_resource_group,
    validate_module_template,
)

logger = structlog.get_logger(__name__)

MODES = ("setup", "validate", "deploy", "clean-deploy")


def grant_app_identities(ctx: DeployContext) -> List[RoleAssignment]:
    """Give the App Service identities access to Key Vault and Storage.

    Raises:
        RoleAssignmentError: If any assignment cannot be created
    """
    account = select_subscription(ctx.cli, ctx.subscription_id)
    assignments = app_identity_assignments(
        ctx.cli, ctx.names, account.subscription_id, ctx.resource_group
    )
    print_table(
        "Role assignments",
        ["Role", "Principal", "Scope", "Assignment name"],
        [(a.role, a.principal_id, a.scope, a.name) for a in assignments],
    )
    if ctx.dry_run:
        return assignments
    for assignment in assignments:
        if not ensure_role_assignment(ctx.cli, assignment):
            raise RoleAssignmentError(
                f"Could not assign {assignment.role} to {assignment.principal_id}",
                scope=assignment.scope,
            )
    print_success(f"{len(assignments)} role assignment(s) in place")
    return assignments


def _run_module(ctx: DeployContext, module: str) -> DeploymentResult:
    spec = get_module(module)
    if spec.kind == ROLE_ASSIGNMENT_KIND:
        print_header(f"{spec.title} - {ctx.environment.value}")
        assignments = grant_app_identities(ctx)
        status = "validated" if ctx.dry_run else "deployed"
        return DeploymentResult(module, status, outputs={"assignments": len(assignments)})
    return deploy_module(ctx, module)


def show_plan(order: List[str]) -> None:
    rows = []
    for tier, modules in enumerate(deployment_tiers(order), 1):
        for module in modules:
            rows.append((tier, module, get_module(module).title))
    print_table("Deployment plan", ["Tier", "Module", "Description"], rows)


def _validation_context(ctx: DeployContext) -> DeployContext:
    return replace(
        ctx, cli=AzureCli(dry_run=True, executable=ctx.cli.executable), registry=None
    )


def validate_all_modules(ctx: DeployContext, order: List[str]) -> List[DeploymentResult]:
    """Validate each module, continuing past failures."""
    validation_ctx = _validation_context(ctx)
    results = []
    for module in order:
        try:
            results.append(_run_module(validation_ctx, module))
        except GpscInfraError as e:
            print_error(f"{module}: {e}")
            results.append(DeploymentResult(module, "failed"))
    return results


def prepare_resource_group(ctx: DeployContext, order: List[str]) -> None:
    """Create the resource group ahead of validation when a planned module owns it.

    Raises:
        ResourceGroupNotFoundError: If the group is missing and no module in
            ``order`` creates it
    """
    if resource_group_exists(ctx.cli, ctx.resource_group):
        return
    owner = next((m for m in order if get_module(m).creates_resource_group), None)
    if owner is None:
        raise ResourceGroupNotFoundError(ctx.resource_group)
    ensure_resource_group(ctx, get_module(owner), exists=False)


def preflight_validation(ctx: DeployContext, order: List[str]) -> List[DeploymentResult]:
    """Validate every planned template before anything is deployed.

    Role assignments have no template and are not validated here.

    Raises:
        DeploymentError: If any template fails validation
    """
    validation_ctx = _validation_context(ctx)
    results = []
    for module in order:
        if get_module(module).kind == ROLE_ASSIGNMENT_KIND:
            continue
        try:
            results.append(validate_module_template(validation_ctx, module))
        except GpscInfraError as e:
            print_error(f"{module}: {e}")
            results.append(DeploymentResult(module, "failed"))

    failed = [r.module for r in results if r.status == "failed"]
    if failed:
        raise DeploymentError(
            f"Validation failed for {', '.join(failed)}; nothing was deployed",
            recovery_suggestion="Fix the templates or parameters and run again",
        )
    print_success(f"All {len(results)} template(s) validated")
    return results


def run_full_deployment(
    ctx: DeployContext, mode: str, only: Optional[Iterable[str]] = None
) -> List[DeploymentResult]:
    """Run ``mode`` over the selected modules and return per-module results.

    Deployment stops at the first failure or cancellation.
    """
    if mode not in MODES:
        raise GpscInfraError(f"Unknown mode '{mode}'", error_code="UNKNOWN_MODE")

    order = deployment_order(only)
    print_header(f"GPS Reporting infrastructure: {mode} ({ctx.environment.value})")
    select_subscription(ctx.cli, ctx.subscription_id)

    if mode == "setup":
        register_providers(ctx.cli)
        return []

    show_plan(order)

    if mode == "validate" or ctx.dry_run:
        return validate_all_modules(ctx, order)

    prepare_resource_group(ctx, order)
    preflight_validation(ctx, order)
    register_providers(ctx.cli)

    if mode == "clean-deploy":
        cleaner = ResourceCleaner(ctx.cli, ctx.resource_group)
        plan = build_plan("resource-group", cleaner, ctx.names)
        report = run_cleanup(cleaner, plan, assume_yes=ctx.assume_yes)
        if report.cancelled:
            return []

    results = []
    for module in order:
        result = _run_module(ctx, module)
        results.append(result)
        if result.status == "cancelled":
            print_info("Stopping: remaining modules were not deployed")
            break
    return results
