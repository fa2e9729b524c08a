"""RBAC role assignments.

Assignment names are derived deterministically from (scope, principal, role
definition) and passed to ``az role assignment create --name``, so running a
grant twice targets the same assignment instead of creating a duplicate.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional

import structlog

from .azure_cli import AzureCli
from .environments import ResourceNames
from .exceptions import AzureAuthenticationError, RoleAssignmentError
from .timeout_config import Timeouts

logger = structlog.get_logger(__name__)

# Built-in role definition ids.
ROLE_DEFINITIONS = {
    "Key Vault Administrator": "00482a5a-887f-4fb3-b363-3b7fe8e74483",
    "Key Vault Secrets User": "4633458b-17de-408a-b874-0445c86b69e6",
    "Storage Blob Data Contributor": "ba92f5b4-2d11-453d-a403-e96b0029c9fe",
}

# Namespace used by the template guid() function.
ASSIGNMENT_NAMESPACE = uuid.UUID("11fb06fb-712d-4ddd-98c7-e71bbd588830")


def role_assignment_name(scope: str, principal_id: str, role_definition_id: str) -> str:
    """Deterministic GUID naming one (scope, principal, role) assignment.

    Scope casing is normalised because ARM treats resource ids
    case-insensitively.
    """
    seed = "-".join([scope.lower().rstrip("/"), principal_id.lower(), role_definition_id.lower()])
    return str(uuid.uuid5(ASSIGNMENT_NAMESPACE, seed))


def resource_group_scope(subscription_id: str, resource_group: str) -> str:
    return f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"


def key_vault_scope(subscription_id: str, resource_group: str, vault: str) -> str:
    return (
        f"{resource_group_scope(subscription_id, resource_group)}"
        f"/providers/Microsoft.KeyVault/vaults/{vault}"
    )


def storage_account_scope(subscription_id: str, resource_group: str, account: str) -> str:
    return (
        f"{resource_group_scope(subscription_id, resource_group)}"
        f"/providers/Microsoft.Storage/storageAccounts/{account}"
    )


@dataclass(frozen=True)
class RoleAssignment:
    """A principal granted a built-in role at a scope."""

    principal_id: str
    role: str
    scope: str
    principal_type: str = "ServicePrincipal"

    @property
    def role_definition_id(self) -> str:
        return ROLE_DEFINITIONS[self.role]

    @property
    def name(self) -> str:
        return role_assignment_name(self.scope, self.principal_id, self.role_definition_id)


@dataclass
class SignedInUser:
    object_id: str
    user_principal_name: str
    display_name: str = ""


def get_signed_in_user(cli: AzureCli) -> SignedInUser:
    """Resolve the signed-in user, falling back to a directory lookup by UPN."""
    user = cli.query_json(["ad", "signed-in-user", "show", "-o", "json"])
    if isinstance(user, dict) and user.get("id"):
        return SignedInUser(
            object_id=user["id"],
            user_principal_name=user.get("userPrincipalName", ""),
            display_name=user.get("displayName", ""),
        )

    upn = cli.query_text(["account", "show", "--query", "user.name", "-o", "tsv"])
    if not upn:
        raise AzureAuthenticationError("Could not determine the signed-in user")
    object_id = cli.query_text(["ad", "user", "show", "--id", upn, "--query", "id", "-o", "tsv"])
    if not object_id:
        raise AzureAuthenticationError(
            f"Could not resolve object id for {upn}",
            recovery_suggestion="Service principals must pass their object id explicitly",
        )
    return SignedInUser(object_id=object_id, user_principal_name=upn)


def count_role_assignments(cli: AzureCli, scope: str) -> int:
    text = cli.query_text(
        ["role", "assignment", "list", "--scope", scope, "--query", "length(@)", "-o", "tsv"],
        timeout=Timeouts.ROLE_ASSIGNMENT,
    )
    try:
        return int(text) if text else 0
    except ValueError:
        return 0


def _create(cli: AzureCli, assignment: RoleAssignment, assignee_args: List[str]) -> bool:
    result = cli.run(
        [
            "role",
            "assignment",
            "create",
            "--name",
            assignment.name,
            "--role",
            assignment.role_definition_id,
            "--scope",
            assignment.scope,
            *assignee_args,
            "--output",
            "none",
        ],
        timeout=Timeouts.ROLE_ASSIGNMENT,
    )
    if result.ok:
        return True
    if "RoleAssignmentExists" in result.stderr:
        logger.info(f"{assignment.role} already assigned at {assignment.scope}")
        return True
    logger.warning(f"Role assignment failed: {result.stderr.strip()}")
    return False


def ensure_role_assignment(cli: AzureCli, assignment: RoleAssignment) -> bool:
    """Create ``assignment`` by object id; True when present afterwards."""
    return _create(
        cli,
        assignment,
        [
            "--assignee-object-id",
            assignment.principal_id,
            "--assignee-principal-type",
            assignment.principal_type,
        ],
    )


@dataclass
class GrantOutcome:
    method: str
    assignment: RoleAssignment


def assign_key_vault_administrator(
    cli: AzureCli,
    user: SignedInUser,
    subscription_id: str,
    resource_group: str,
    vault: str,
) -> GrantOutcome:
    """Grant the user Key Vault Administrator, trying progressively wider methods.

    Order: vault scope by object id, vault scope by UPN, resource-group scope
    by object id.

    Raises:
        RoleAssignmentError: If every method fails
    """
    vault_scope = key_vault_scope(subscription_id, resource_group, vault)
    by_object_id = RoleAssignment(
        user.object_id, "Key Vault Administrator", vault_scope, principal_type="User"
    )
    if ensure_role_assignment(cli, by_object_id):
        return GrantOutcome("object-id", by_object_id)

    if user.user_principal_name:
        if _create(cli, by_object_id, ["--assignee", user.user_principal_name]):
            return GrantOutcome("user-principal-name", by_object_id)

    at_group = RoleAssignment(
        user.object_id,
        "Key Vault Administrator",
        resource_group_scope(subscription_id, resource_group),
        principal_type="User",
    )
    if ensure_role_assignment(cli, at_group):
        return GrantOutcome("resource-group-scope", at_group)

    raise RoleAssignmentError(
        f"Could not assign Key Vault Administrator on {vault}", scope=vault_scope
    )


def check_key_vault_access(cli: AzureCli, vault: str) -> bool:
    return cli.succeeds(["keyvault", "secret", "list", "--vault-name", vault, "-o", "none"])


def managed_identity_principal(
    cli: AzureCli, app_name: str, resource_group: str
) -> Optional[str]:
    return cli.query_text(
        [
            "webapp",
            "identity",
            "show",
            "--name",
            app_name,
            "--resource-group",
            resource_group,
            "--query",
            "principalId",
            "-o",
            "tsv",
        ]
    )


def app_identity_assignments(
    cli: AzureCli, names: ResourceNames, subscription_id: str, resource_group: str
) -> List[RoleAssignment]:
    """Role assignments the App Service identities need; apps without one are skipped."""
    vault = key_vault_scope(subscription_id, resource_group, names.key_vault)
    storage = storage_account_scope(subscription_id, resource_group, names.storage_account)
    assignments: List[RoleAssignment] = []
    for app in (names.backend_app, names.frontend_app):
        principal = managed_identity_principal(cli, app, resource_group)
        if not principal:
            logger.warning(f"{app} has no managed identity; skipping its role assignments")
            continue
        assignments.append(RoleAssignment(principal, "Key Vault Secrets User", vault))
        if app == names.backend_app:
            assignments.append(RoleAssignment(principal, "Storage Blob Data Contributor", storage))
    return assignments
