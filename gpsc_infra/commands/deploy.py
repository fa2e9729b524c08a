"""CLI command for deploying one infrastructure module."""

from typing import Dict, Optional, Tuple

import click
import structlog

from ..deployment.modules import DEPLOYABLE
from ..deployment.workflow import deploy_module
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options

logger = structlog.get_logger(__name__)


def parse_parameter_overrides(values: Tuple[str, ...]) -> Dict[str, str]:
    """Turn repeated ``--parameter key=value`` flags into a dict."""
    overrides: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="--parameter")
        overrides[key] = value
    return overrides


@click.command(name="deploy", context_settings=CONTEXT_SETTINGS)
@click.argument("module", type=click.Choice(DEPLOYABLE))
@target_options
@click.option(
    "-p",
    "--password",
    default=None,
    help="SQL admin password (database module; default: Key Vault or prompt)",
)
@click.option(
    "--deploy-plan/--no-deploy-plan",
    default=True,
    help="Backend only: create the App Service Plan or reuse the existing one",
)
@click.option(
    "--parameter",
    "parameters",
    multiple=True,
    metavar="KEY=VALUE",
    help="Extra template parameter override (repeatable)",
)
@handle_errors
def deploy_command(
    module: str,
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
    password: Optional[str],
    deploy_plan: bool,
    parameters: Tuple[str, ...],
) -> None:
    """Validate (-d) or deploy MODULE to an environment."""
    ctx = build_context(
        environment,
        resource_group,
        subscription,
        location,
        yes,
        dry_run,
        iac_root,
        sql_password=password,
        deploy_plan=deploy_plan,
        extra_parameters=parse_parameter_overrides(parameters),
    )
    result = deploy_module(ctx, module)
    logger.info(f"{module}: {result.status}")
