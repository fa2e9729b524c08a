"""CLI command for first-time subscription and workspace setup."""

from typing import Optional

import click

from ..console import print_header, print_success, print_table, print_warning
from ..deployment.parameters import STACK_PARAMETERS_DIR, parameters_filename, write_parameters_file
from ..deployment.providers import register_providers
from ..keyvault_secrets import DEFAULT_SQL_ADMIN
from ..passwords import generate_password
from ..preconditions import select_subscription
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="setup", context_settings=CONTEXT_SETTINGS)
@target_options
@click.option(
    "--write-parameters",
    is_flag=True,
    help="Generate the stack parameters file for the environment",
)
@click.option("--your-ip", default="", help="Public IP allowed through development firewalls")
@click.option("--force", is_flag=True, help="Overwrite an existing parameters file")
@handle_errors
def setup_command(
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
    write_parameters: bool,
    your_ip: str,
    force: bool,
) -> None:
    """Register resource providers and optionally write a parameters file."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, dry_run, iac_root
    )
    print_header(f"Setup - {ctx.environment.value}")
    select_subscription(ctx.cli, ctx.subscription_id)

    report = register_providers(ctx.cli)
    print_table(
        "Resource providers",
        ["Namespace", "State"],
        sorted(report.states.items()),
    )
    if report.failed:
        print_warning(f"Registration failed for: {', '.join(report.failed)}")
    if report.pending:
        print_warning(f"Still registering: {', '.join(report.pending)}")

    if write_parameters:
        path = ctx.iac_root / STACK_PARAMETERS_DIR / parameters_filename(ctx.environment)
        if dry_run:
            print_warning(f"Dry run: would write {path}")
            return
        if not your_ip:
            print_warning("No --your-ip given; yourIpAddress will be empty")
        write_parameters_file(
            path,
            {
                "environment": ctx.environment.value,
                "baseName": ctx.config.base_name,
                "location": ctx.location,
                "sqlAdminUsername": DEFAULT_SQL_ADMIN,
                "sqlAdminPassword": generate_password(),
                "yourIpAddress": your_ip,
            },
            force=force,
        )
        print_success(f"Wrote {path}; keep it out of version control")
