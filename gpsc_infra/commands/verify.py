"""CLI command for verifying a deployed environment."""

from typing import Optional

import click

from ..console import print_error, print_header, print_info, print_success, print_table
from ..preconditions import select_subscription
from ..verification import MISSING, resource_count, verify_infrastructure
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="verify", context_settings=CONTEXT_SETTINGS)
@target_options
@handle_errors
def verify_command(
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
) -> None:
    """Check that every expected resource of an environment exists."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, True, iac_root
    )
    print_header(f"Infrastructure verification - {ctx.environment.value}")
    select_subscription(ctx.cli, ctx.subscription_id)

    checks = verify_infrastructure(ctx.cli, ctx.names, ctx.resource_group)
    print_table(
        "Resources",
        ["Resource", "Name", "Status", "Detail"],
        [(c.resource, c.name, c.status.upper(), c.detail) for c in checks],
    )
    count = resource_count(ctx.cli, ctx.resource_group)
    if count is not None:
        print_info(f"Total resources in {ctx.resource_group}: {count}")

    missing = [c for c in checks if c.status == MISSING]
    if missing:
        print_error(f"{len(missing)} expected resource(s) missing")
        raise SystemExit(1)
    print_success("All expected resources are present")
