"""CLI command for cleaning up module resources."""

from typing import Optional

import click

from ..cleanup import ResourceCleaner, build_plan, cleanup_modules, run_cleanup
from ..console import print_warning
from ..preconditions import resource_group_exists, select_subscription
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="clean", context_settings=CONTEXT_SETTINGS)
@click.argument("module", type=click.Choice(cleanup_modules()))
@target_options
@click.option(
    "--purge",
    is_flag=True,
    help="key-vault: purge the vault after deleting it (irreversible)",
)
@click.option(
    "-a",
    "--delete-plan",
    is_flag=True,
    help="backend: also delete the App Service Plan if the frontend does not use it",
)
@click.option(
    "-r",
    "--delete-rg",
    is_flag=True,
    help="resource-group: delete the resource group itself instead of emptying it",
)
@handle_errors
def clean_command(
    module: str,
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
    purge: bool,
    delete_plan: bool,
    delete_rg: bool,
) -> None:
    """Delete the resources of MODULE, preserving the resource group."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, dry_run, iac_root
    )
    if delete_rg and module != "resource-group":
        print_warning("--delete-rg only applies to the resource-group cleanup; ignoring it")

    select_subscription(ctx.cli, ctx.subscription_id)

    if not resource_group_exists(ctx.cli, ctx.resource_group):
        print_warning(f"Resource group '{ctx.resource_group}' does not exist; nothing to clean")
        return

    cleaner = ResourceCleaner(ctx.cli, ctx.resource_group)
    plan = build_plan(
        module,
        cleaner,
        ctx.names,
        purge=purge,
        delete_plan=delete_plan,
        delete_group=delete_rg and module == "resource-group",
    )
    run_cleanup(cleaner, plan, assume_yes=yes)
