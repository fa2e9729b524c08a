"""Tests for role assignment naming and grants."""

import uuid

import pytest

from gpsc_infra.azure_cli import AzureCli
from gpsc_infra.environments import Environment, ResourceNames
from gpsc_infra.exceptions import AzureAuthenticationError, RoleAssignmentError
from gpsc_infra.iam import (
    ROLE_DEFINITIONS,
    RoleAssignment,
    SignedInUser,
    app_identity_assignments,
    assign_key_vault_administrator,
    count_role_assignments,
    ensure_role_assignment,
    get_signed_in_user,
    key_vault_scope,
    role_assignment_name,
)

from conftest import DEV_RG, SUBSCRIPTION_ID

KV_ADMIN = ROLE_DEFINITIONS["Key Vault Administrator"]
SCOPE = key_vault_scope(SUBSCRIPTION_ID, DEV_RG, "bo-gpsc-reports-dev-kv")
USER = SignedInUser("0000aaaa-0000-0000-0000-000000000001", "operator@example.com")


class TestRoleAssignmentName:
    def test_is_a_guid(self):
        uuid.UUID(role_assignment_name(SCOPE, USER.object_id, KV_ADMIN))

    def test_is_stable(self):
        assert role_assignment_name(SCOPE, USER.object_id, KV_ADMIN) == role_assignment_name(
            SCOPE, USER.object_id, KV_ADMIN
        )

    def test_ignores_scope_casing(self):
        assert role_assignment_name(SCOPE.upper(), USER.object_id, KV_ADMIN) == role_assignment_name(
            SCOPE, USER.object_id, KV_ADMIN
        )

    def test_distinct_inputs_give_distinct_names(self):
        names = {
            role_assignment_name(SCOPE, USER.object_id, KV_ADMIN),
            role_assignment_name(SCOPE, "someone-else", KV_ADMIN),
            role_assignment_name(SCOPE, USER.object_id, ROLE_DEFINITIONS["Key Vault Secrets User"]),
            role_assignment_name(SCOPE + "-other", USER.object_id, KV_ADMIN),
        }
        assert len(names) == 4


class TestEnsureRoleAssignment:
    def test_passes_deterministic_name(self, az):
        az.on("role", "assignment", "create")
        assignment = RoleAssignment("principal-1", "Key Vault Secrets User", SCOPE)

        assert ensure_role_assignment(AzureCli(), assignment)

        call = az.called("role", "assignment", "create")[0]
        assert call[call.index("--name") + 1] == assignment.name
        assert call[call.index("--assignee-object-id") + 1] == "principal-1"
        assert call[call.index("--assignee-principal-type") + 1] == "ServicePrincipal"

    def test_existing_assignment_is_success(self, az):
        az.fail("role", "assignment", "create", stderr="(RoleAssignmentExists) exists")

        assert ensure_role_assignment(
            AzureCli(), RoleAssignment("principal-1", "Key Vault Secrets User", SCOPE)
        )

    def test_failure(self, az):
        az.fail("role", "assignment", "create", stderr="AuthorizationFailed")

        assert not ensure_role_assignment(
            AzureCli(), RoleAssignment("principal-1", "Key Vault Secrets User", SCOPE)
        )


class TestAssignKeyVaultAdministrator:
    def test_object_id_first(self, az):
        az.on("role", "assignment", "create")

        outcome = assign_key_vault_administrator(
            AzureCli(), USER, SUBSCRIPTION_ID, DEV_RG, "bo-gpsc-reports-dev-kv"
        )

        assert outcome.method == "object-id"
        assert len(az.called("role", "assignment", "create")) == 1

    def test_falls_back_to_user_principal_name(self, az):
        az.fail("role", "assignment", "create", contains=("--assignee-object-id",))
        az.on("role", "assignment", "create", contains=("--assignee",))

        outcome = assign_key_vault_administrator(
            AzureCli(), USER, SUBSCRIPTION_ID, DEV_RG, "bo-gpsc-reports-dev-kv"
        )

        assert outcome.method == "user-principal-name"
        assert outcome.assignment.scope == SCOPE

    def test_falls_back_to_resource_group_scope(self, az):
        az.fail("role", "assignment", "create")
        az.on(
            "role",
            "assignment",
            "create",
            contains=("--scope", f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{DEV_RG}"),
        )

        outcome = assign_key_vault_administrator(
            AzureCli(), USER, SUBSCRIPTION_ID, DEV_RG, "bo-gpsc-reports-dev-kv"
        )

        assert outcome.method == "resource-group-scope"
        assert len(az.called("role", "assignment", "create")) == 3

    def test_all_methods_fail(self, az):
        az.fail("role", "assignment", "create", stderr="AuthorizationFailed")

        with pytest.raises(RoleAssignmentError):
            assign_key_vault_administrator(
                AzureCli(), USER, SUBSCRIPTION_ID, DEV_RG, "bo-gpsc-reports-dev-kv"
            )


class TestSignedInUser:
    def test_signed_in_user(self, az):
        az.on(
            "ad",
            "signed-in-user",
            "show",
            stdout={"id": "oid-1", "userPrincipalName": "op@example.com", "displayName": "Op"},
        )

        user = get_signed_in_user(AzureCli())

        assert user.object_id == "oid-1"
        assert user.user_principal_name == "op@example.com"

    def test_falls_back_to_directory_lookup(self, logged_in):
        logged_in.on("ad", "user", "show", stdout="oid-2\n")

        user = get_signed_in_user(AzureCli())

        assert user.object_id == "oid-2"
        assert user.user_principal_name == "operator@example.com"

    def test_unresolvable_user(self, az):
        with pytest.raises(AzureAuthenticationError):
            get_signed_in_user(AzureCli())


def test_count_role_assignments(az):
    az.on("role", "assignment", "list", stdout="3\n")

    assert count_role_assignments(AzureCli(), SCOPE) == 3


def test_app_identity_assignments_skip_apps_without_identity(az):
    names = ResourceNames("bo-gpsc-reports", Environment.DEV)
    az.on("webapp", "identity", "show", contains=(names.backend_app,), stdout="backend-principal\n")

    assignments = app_identity_assignments(AzureCli(), names, SUBSCRIPTION_ID, DEV_RG)

    assert [(a.principal_id, a.role) for a in assignments] == [
        ("backend-principal", "Key Vault Secrets User"),
        ("backend-principal", "Storage Blob Data Contributor"),
    ]
