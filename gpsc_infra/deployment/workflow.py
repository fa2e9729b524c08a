"""Deployment workflow for a single infrastructure module.

Steps: authenticate -> select subscription -> resource group -> existing
resource check -> module prechecks -> parameters -> confirmation ->
validate (dry run) or create -> output summary -> history.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from ..console import (
    print_header,
    print_info,
    print_key_values,
    print_status,
    print_success,
    print_table,
    print_warning,
)
from ..deployment_registry import DeploymentStatus
from ..exceptions import (
    DeploymentError,
    ParametersFileError,
    PreconditionError,
    ResourceGroupNotFoundError,
)
from ..keyvault_secrets import (
    SQL_ADMIN_PASSWORD_SECRET,
    SecretSpec,
    get_secret,
    key_vault_exists,
    set_secret,
)
from ..passwords import DEFAULT_POLICY, DRY_RUN_PLACEHOLDER_PASSWORD, prompt_new_password
from ..preconditions import create_resource_group, resource_group_exists, select_subscription
from ..prompts import confirm
from .bicep_deployer import (
    create_deployment,
    deployment_name,
    get_deployment_outputs,
    validate_template,
)
from .context import DeployContext
from .modules import ModuleSpec, get_module
from .outputs import flatten, output_value, plain_outputs
from .parameters import candidate_paths, find_parameters_file, load_parameters
from .prechecks import run_prechecks

logger = structlog.get_logger(__name__)


@dataclass
class DeploymentResult:
    """Outcome of one module run."""

    module: str
    status: str
    deployment_name: str = ""
    outputs: Dict[str, Any] = field(default_factory=dict)


def resolve_template(ctx: DeployContext, spec: ModuleSpec) -> Path:
    template = ctx.iac_root / spec.template
    if not template.is_file():
        raise PreconditionError(
            f"Template not found: {template}",
            resource=str(template),
            recovery_suggestion="Point --iac-root at the directory holding modules/",
        )
    return template


def resolve_parameters_file(
    ctx: DeployContext, spec: ModuleSpec, template: Path
) -> Optional[Path]:
    """Locate and sanity-check the module's parameters file."""
    path = find_parameters_file(ctx.iac_root, template, ctx.environment)
    if path is None:
        if spec.parameters_required:
            searched = ", ".join(
                str(p) for p in candidate_paths(ctx.iac_root, template, ctx.environment)
            )
            raise ParametersFileError(
                f"No parameters file for {spec.name} ({ctx.environment.value})",
                context={"searched": searched},
            )
        print_warning("No parameters file found; deploying with template defaults")
        return None
    load_parameters(path)
    print_status(f"Using parameters file {path}")
    return path


def ensure_resource_group(ctx: DeployContext, spec: ModuleSpec, exists: bool) -> None:
    """Create the resource group for modules allowed to, outside dry runs."""
    if exists:
        return
    if not spec.creates_resource_group or ctx.dry_run:
        raise ResourceGroupNotFoundError(ctx.resource_group)
    tags = {
        "Environment": ctx.environment.value,
        "Project": ctx.config.project_tag,
        **spec.tags,
    }
    print_status(f"Creating resource group {ctx.resource_group}")
    create_resource_group(ctx.cli, ctx.resource_group, ctx.location, tags)


def confirm_update_if_existing(ctx: DeployContext, spec: ModuleSpec) -> bool:
    """Return False when the operator declines to update an existing resource."""
    if spec.existing is None:
        return True
    if not ctx.cli.succeeds(spec.existing(ctx.names, ctx.resource_group)):
        return True
    print_warning(f"{spec.title} '{spec.existing_name(ctx.names)}' already exists")
    if ctx.dry_run:
        print_info("Dry run will validate an update of the existing resource")
        return True
    return confirm("Update the existing deployment?", assume_yes=ctx.assume_yes)


def resolve_sql_password(ctx: DeployContext) -> str:
    """Password from the flag, then Key Vault, then an interactive prompt.

    Passwords that did not come from Key Vault are stored there when the
    vault exists.
    """
    if ctx.dry_run:
        return ctx.sql_password or DRY_RUN_PLACEHOLDER_PASSWORD

    names = ctx.names
    password = ctx.sql_password
    if password:
        DEFAULT_POLICY.validate(password)
    else:
        password = get_secret(ctx.cli, names.key_vault, SQL_ADMIN_PASSWORD_SECRET)
        if password:
            print_success(f"Using SQL admin password from Key Vault {names.key_vault}")
            return password
        password = prompt_new_password()

    if key_vault_exists(ctx.cli, names.key_vault, ctx.resource_group):
        set_secret(
            ctx.cli,
            names.key_vault,
            SecretSpec(
                SQL_ADMIN_PASSWORD_SECRET,
                password,
                "SQL Server administrator password",
                {"environment": ctx.environment.value, "purpose": "sql-admin"},
            ),
        )
    else:
        print_warning(
            f"Key Vault {names.key_vault} not found; store the SQL password securely yourself"
        )
    return password


def module_overrides(
    ctx: DeployContext, spec: ModuleSpec, sql_password: Optional[str]
) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "environment": ctx.environment.value,
        "location": ctx.location,
    }
    if sql_password is not None:
        overrides["sqlAdminPassword"] = sql_password
    if spec.name == "backend":
        overrides["deployAppServicePlan"] = ctx.deploy_plan
        if not ctx.deploy_plan:
            overrides["existingAppServicePlanName"] = ctx.names.app_service_plan
    overrides.update(ctx.extra_parameters)
    return overrides


def show_outputs(spec: ModuleSpec, outputs: Dict[str, Any]) -> None:
    if spec.outputs:
        print_key_values(
            f"{spec.title} outputs",
            {item.label: output_value(outputs, item.key) for item in spec.outputs},
        )
    for section in spec.summary_sections:
        value = output_value(outputs, section, default=None)
        if value:
            print_table(section, ["Setting", "Value"], flatten(value))


def _record(
    ctx: DeployContext,
    spec: ModuleSpec,
    name: str,
    status: DeploymentStatus,
    outputs: Optional[Dict[str, Any]] = None,
    error: Optional[str] = None,
) -> None:
    if ctx.registry is None:
        return
    ctx.registry.record(
        name,
        spec.name,
        ctx.environment.value,
        ctx.resource_group,
        status,
        outputs=outputs,
        error=error,
    )


def validate_module_template(ctx: DeployContext, module: str) -> DeploymentResult:
    """Run ``az deployment group validate`` for one module's template.

    Existing-resource and prerequisite checks are skipped; the resource
    group must already exist.
    """
    spec = get_module(module)
    template = resolve_template(ctx, spec)
    parameters_file = resolve_parameters_file(ctx, spec, template)
    sql_password = None
    if spec.needs_sql_password:
        sql_password = ctx.sql_password or DRY_RUN_PLACEHOLDER_PASSWORD
    overrides = module_overrides(ctx, spec, sql_password)
    validate_template(
        ctx.cli, spec.name, ctx.resource_group, template, parameters_file, overrides
    )
    print_success(f"{spec.title} template validation passed")
    return DeploymentResult(spec.name, "validated")


def deploy_module(ctx: DeployContext, module: str) -> DeploymentResult:
    """Validate (dry run) or deploy one module.

    Raises:
        GpscInfraError subclasses for failed preconditions or deployments
    """
    spec = get_module(module)
    mode = "validation" if ctx.dry_run else "deployment"
    print_header(f"{spec.title} {mode} - {ctx.environment.value}")

    select_subscription(ctx.cli, ctx.subscription_id)

    rg_exists = resource_group_exists(ctx.cli, ctx.resource_group)
    if not rg_exists and (ctx.dry_run or not spec.creates_resource_group):
        raise ResourceGroupNotFoundError(ctx.resource_group)

    template = resolve_template(ctx, spec)
    parameters_file = resolve_parameters_file(ctx, spec, template)
    ensure_resource_group(ctx, spec, rg_exists)

    if not confirm_update_if_existing(ctx, spec):
        print_warning("Deployment cancelled by user")
        return DeploymentResult(spec.name, "cancelled")

    run_prechecks(spec.name, ctx)

    sql_password = resolve_sql_password(ctx) if spec.needs_sql_password else None
    overrides = module_overrides(ctx, spec, sql_password)
    name = deployment_name(spec.name, ctx.environment.value)

    if ctx.dry_run:
        validate_template(
            ctx.cli, spec.name, ctx.resource_group, template, parameters_file, overrides
        )
        print_success(f"{spec.title} template validation passed")
        _record(ctx, spec, name, DeploymentStatus.VALIDATED)
        return DeploymentResult(spec.name, "validated", name)

    if not confirm(
        f"Deploy {spec.title} to resource group '{ctx.resource_group}'?",
        assume_yes=ctx.assume_yes,
    ):
        print_warning("Deployment cancelled by user")
        return DeploymentResult(spec.name, "cancelled")

    print_status(f"Starting deployment {name}")
    try:
        create_deployment(
            ctx.cli, spec.name, name, ctx.resource_group, template, parameters_file, overrides
        )
    except DeploymentError as e:
        _record(ctx, spec, name, DeploymentStatus.FAILED, error=e.message)
        raise

    outputs = get_deployment_outputs(ctx.cli, ctx.resource_group, name)
    print_success(f"{spec.title} deployed successfully")
    show_outputs(spec, outputs)
    plain = plain_outputs(outputs)
    _record(ctx, spec, name, DeploymentStatus.DEPLOYED, outputs=plain)
    return DeploymentResult(spec.name, "deployed", name, plain)
