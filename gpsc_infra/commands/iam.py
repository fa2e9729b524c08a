"""CLI commands for identity lookups and role assignments."""

from typing import Optional

import click

from ..azure_cli import AzureCli
from ..console import (
    print_header,
    print_info,
    print_key_values,
    print_status,
    print_success,
    print_warning,
)
from ..exceptions import PreconditionError
from ..iam import (
    ROLE_DEFINITIONS,
    assign_key_vault_administrator,
    check_key_vault_access,
    count_role_assignments,
    get_signed_in_user,
    key_vault_scope,
    role_assignment_name,
)
from ..keyvault_secrets import key_vault_exists
from ..preconditions import ensure_logged_in, require_resource_group, select_subscription
from .base import CONTEXT_SETTINGS, build_context, handle_errors, target_options


@click.command(name="assign-keyvault-permissions", context_settings=CONTEXT_SETTINGS)
@target_options
@handle_errors
def assign_keyvault_permissions_command(
    environment: Optional[str],
    resource_group: Optional[str],
    subscription: Optional[str],
    location: Optional[str],
    yes: bool,
    dry_run: bool,
    iac_root,
) -> None:
    """Grant the signed-in user Key Vault Administrator on the environment's vault."""
    ctx = build_context(
        environment, resource_group, subscription, location, yes, dry_run, iac_root
    )
    vault = ctx.names.key_vault
    print_header(f"Key Vault permissions - {ctx.environment.value}")

    account = select_subscription(ctx.cli, ctx.subscription_id)
    user = get_signed_in_user(ctx.cli)
    print_key_values(
        "Signed-in user",
        {
            "Object ID": user.object_id,
            "User": user.user_principal_name or "-",
            "Tenant": account.tenant_id,
        },
    )

    require_resource_group(ctx.cli, ctx.resource_group)
    if not key_vault_exists(ctx.cli, vault, ctx.resource_group):
        raise PreconditionError(
            f"Key Vault '{vault}' not found in '{ctx.resource_group}'",
            resource=vault,
            recovery_suggestion="Deploy the key-vault module first",
        )

    scope = key_vault_scope(account.subscription_id, ctx.resource_group, vault)
    before = count_role_assignments(ctx.cli, scope)
    print_status(f"Existing role assignments on {vault}: {before}")

    if ctx.dry_run:
        name = role_assignment_name(
            scope, user.object_id, ROLE_DEFINITIONS["Key Vault Administrator"]
        )
        print_info(f"Dry run: would assign Key Vault Administrator as {name}")
        return

    outcome = assign_key_vault_administrator(
        ctx.cli, user, account.subscription_id, ctx.resource_group, vault
    )
    print_success(
        f"Key Vault Administrator assigned via {outcome.method} at {outcome.assignment.scope}"
    )

    after = count_role_assignments(ctx.cli, scope)
    if after <= before:
        print_warning("Assignment count did not increase; the role may have already existed")
    if check_key_vault_access(ctx.cli, vault):
        print_success(f"Secret access to {vault} verified")
    else:
        print_warning("Secret access not yet effective; RBAC changes can take a few minutes")


@click.command(name="whoami", context_settings=CONTEXT_SETTINGS)
@handle_errors
def whoami_command() -> None:
    """Show the tenant id, subscription and signed-in object id."""
    cli = AzureCli(dry_run=True)
    account = ensure_logged_in(cli)
    user = get_signed_in_user(cli)
    print_key_values(
        "Azure identity",
        {
            "Tenant ID": account.tenant_id,
            "Subscription": f"{account.subscription_name} ({account.subscription_id})",
            "User": user.user_principal_name or account.user_name,
            "Object ID": user.object_id,
        },
    )


@click.command(name="role-assignment-name", context_settings=CONTEXT_SETTINGS)
@click.option("--scope", required=True, help="Full resource id of the assignment scope")
@click.option("--principal-id", required=True, help="Object id of the principal")
@click.option(
    "--role",
    required=True,
    help=f"Role definition id or one of: {', '.join(ROLE_DEFINITIONS)}",
)
def role_assignment_name_command(scope: str, principal_id: str, role: str) -> None:
    """Print the deterministic assignment name for a scope, principal and role."""
    click.echo(role_assignment_name(scope, principal_id, ROLE_DEFINITIONS.get(role, role)))
