"""CLI command for the full, module-by-module stack deployment."""

from typing import Optional, Tuple

import click

from ..console import print_table
from ..deployment.modules import STACK_MODULES
from ..deployment.orchestrator import MODES, run_full_deployment
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="deploy-all", context_settings=CONTEXT_SETTINGS)
@click.option(
    "-m",
    "--mode",
    type=click.Choice(MODES),
    default="deploy",
    show_default=True,
    help="setup: register providers; validate: validate all; "
    "deploy: deploy in dependency order; clean-deploy: empty the group first",
)
@target_options
@click.option(
    "--only",
    multiple=True,
    type=click.Choice(STACK_MODULES),
    help="Restrict to these modules (repeatable); dependencies are not added",
)
@handle_errors
def deploy_all_command(
    mode: str,
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
    only: Tuple[str, ...],
) -> None:
    """Set up, validate or deploy the whole GPS Reporting stack."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, dry_run, iac_root
    )
    results = run_full_deployment(ctx, mode, only or None)
    if results:
        print_table(
            "Summary",
            ["Module", "Status", "Deployment"],
            [(r.module, r.status, r.deployment_name or "-") for r in results],
        )
    if any(r.status == "failed" for r in results):
        raise SystemExit(1)
