"""CLI command for storing database credentials in Key Vault."""

from typing import Optional

import click

from ..console import print_header, print_info, print_success, print_table
from ..exceptions import PreconditionError
from ..keyvault_secrets import (
    DEFAULT_SQL_ADMIN,
    database_secrets,
    key_vault_exists,
    provision_database_secrets,
)
from ..passwords import DRY_RUN_PLACEHOLDER_PASSWORD, prompt_new_password
from ..preconditions import require_resource_group, select_subscription
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="add-database-secrets", context_settings=CONTEXT_SETTINGS)
@target_options
@click.option("-u", "--username", default=None, help=f"SQL admin username (default: {DEFAULT_SQL_ADMIN})")
@handle_errors
def add_database_secrets_command(
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
    username: Optional[str],
) -> None:
    """Store SQL admin credentials and connection strings in Key Vault."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, dry_run, iac_root
    )
    names = ctx.names
    print_header(f"Database secrets - {ctx.environment.value}")
    select_subscription(ctx.cli, ctx.subscription_id)
    require_resource_group(ctx.cli, ctx.resource_group)
    if not key_vault_exists(ctx.cli, names.key_vault, ctx.resource_group):
        raise PreconditionError(
            f"Key Vault '{names.key_vault}' not found in resource group '{ctx.resource_group}'",
            resource=names.key_vault,
            recovery_suggestion="Deploy the key-vault module first",
        )

    if ctx.dry_run:
        secrets = database_secrets(names, username or DEFAULT_SQL_ADMIN, DRY_RUN_PLACEHOLDER_PASSWORD)
        print_table(
            f"Secrets that would be set in {names.key_vault}",
            ["Secret", "Description"],
            [(s.name, s.description) for s in secrets],
        )
        print_info("Dry run: no secrets were written")
        return

    if not username:
        username = click.prompt("SQL admin username", default=DEFAULT_SQL_ADMIN)
    password = prompt_new_password()

    written = provision_database_secrets(ctx.cli, names, ctx.resource_group, username, password)
    print_success(f"Stored {len(written)} secrets in {names.key_vault}: {', '.join(written)}")
