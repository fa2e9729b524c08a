"""Tests for the single-module deployment workflow."""

from unittest.mock import patch

import pytest

from gpsc_infra.deployment.workflow import (
    deploy_module,
    module_overrides,
    resolve_sql_password,
)
from gpsc_infra.deployment.modules import get_module
from gpsc_infra.deployment_registry import DeploymentStatus
from gpsc_infra.exceptions import (
    DeploymentError,
    ParametersFileError,
    PasswordPolicyError,
    PreconditionError,
    ResourceGroupNotFoundError,
)
from gpsc_infra.passwords import DRY_RUN_PLACEHOLDER_PASSWORD

from conftest import DEV_RG

VNET_OUTPUTS = {
    "vnetName": {"type": "String", "value": "bo-gpsc-reports-dev-vnet"},
    "securitySummary": {"type": "Object", "value": {"publicAccess": False}},
}


class TestDryRun:
    def test_missing_resource_group_is_fatal(self, logged_in, make_context):
        ctx = make_context(dry_run=True)

        with pytest.raises(ResourceGroupNotFoundError, match=f"'{DEV_RG}' does not exist"):
            deploy_module(ctx, "vnet")

        assert logged_in.mutating_calls == []
        assert logged_in.called("deployment") == []

    def test_validates_without_mutating(self, logged_in, make_context):
        logged_in.on("group", "show").on("deployment", "group", "validate")
        ctx = make_context(dry_run=True)

        result = deploy_module(ctx, "vnet")

        assert result.status == "validated"
        assert result.deployment_name.startswith("vnet-dev-")
        assert logged_in.mutating_calls == []
        validate = logged_in.called("deployment", "group", "validate")[0]
        assert "environment=dev" in validate
        assert "location=East US" in validate

    def test_database_uses_placeholder_password(self, logged_in, make_context):
        logged_in.on("group", "show").on("deployment", "group", "validate")

        deploy_module(make_context(dry_run=True), "database")

        validate = logged_in.called("deployment", "group", "validate")[0]
        assert f"sqlAdminPassword={DRY_RUN_PLACEHOLDER_PASSWORD}" in validate
        assert logged_in.called("keyvault", "secret") == []

    def test_existing_resource_is_validated_as_update(self, logged_in, make_context):
        logged_in.on("group", "show").on("network", "vnet", "show")
        logged_in.on("deployment", "group", "validate")

        assert deploy_module(make_context(dry_run=True), "vnet").status == "validated"

    def test_validation_failure(self, logged_in, make_context):
        logged_in.on("group", "show")
        logged_in.fail("deployment", "group", "validate", stderr="InvalidTemplate")

        with pytest.raises(DeploymentError, match="InvalidTemplate"):
            deploy_module(make_context(dry_run=True), "vnet")


class TestDeploy:
    def test_vnet_creates_resource_group(self, logged_in, make_context):
        logged_in.on("group", "create").on("deployment", "group", "create")
        logged_in.on("deployment", "group", "show", stdout=VNET_OUTPUTS)
        ctx = make_context(assume_yes=True)

        result = deploy_module(ctx, "vnet")

        assert result.status == "deployed"
        assert result.outputs["vnetName"] == "bo-gpsc-reports-dev-vnet"
        create_rg = logged_in.called("group", "create")[0]
        assert "Environment=dev" in create_rg
        assert "Project=BO-GPSC-Reports" in create_rg
        assert "Module=VNet" in create_rg
        recorded = ctx.registry.latest("vnet", "dev")
        assert recorded["id"] == result.deployment_name

    def test_other_modules_need_existing_group(self, logged_in, make_context):
        with pytest.raises(ResourceGroupNotFoundError):
            deploy_module(make_context(assume_yes=True), "storage")

        assert logged_in.called("group", "create") == []

    def test_missing_template_creates_nothing(self, logged_in, make_context, iac_root):
        (iac_root / "modules/network/vnet/main.bicep").unlink()

        with pytest.raises(PreconditionError, match="Template not found"):
            deploy_module(make_context(assume_yes=True), "vnet")

        assert logged_in.mutating_calls == []

    def test_missing_required_parameters_file(self, logged_in, make_context, iac_root):
        (iac_root / "modules/network/vnet/parameters.dev.json").unlink()
        (iac_root / "deployments/gpscreports/parameters.dev.json").unlink()

        with pytest.raises(ParametersFileError):
            deploy_module(make_context(assume_yes=True), "vnet")

        assert logged_in.mutating_calls == []

    def test_declining_update_cancels(self, logged_in, make_context):
        logged_in.on("group", "show").on("network", "vnet", "show")

        with patch("gpsc_infra.deployment.workflow.confirm", return_value=False):
            result = deploy_module(make_context(), "vnet")

        assert result.status == "cancelled"
        assert logged_in.mutating_calls == []

    def test_failure_is_recorded(self, logged_in, make_context):
        logged_in.on("group", "show")
        logged_in.fail("deployment", "group", "create", stderr="QuotaExceeded")
        ctx = make_context(assume_yes=True)

        with pytest.raises(DeploymentError, match="QuotaExceeded"):
            deploy_module(ctx, "storage")

        failed = ctx.registry.list_deployments(status=DeploymentStatus.FAILED)
        assert failed[0]["module"] == "storage"
        assert "QuotaExceeded" in failed[0]["error"]

    def test_app_service_requires_subnet(self, logged_in, make_context):
        logged_in.on("group", "show")

        with pytest.raises(PreconditionError, match="VNet"):
            deploy_module(make_context(assume_yes=True), "app-service")

        assert logged_in.called("deployment", "group", "create") == []


class TestSqlPassword:
    def test_weak_flag_password_is_rejected(self, logged_in, make_context):
        with pytest.raises(PasswordPolicyError):
            resolve_sql_password(make_context(sql_password="weak"))

    def test_key_vault_password_is_reused(self, logged_in, make_context):
        logged_in.on("keyvault", "secret", "show", stdout="FromVault1!\n")

        assert resolve_sql_password(make_context()) == "FromVault1!"
        assert logged_in.called("keyvault", "secret", "set") == []

    def test_prompted_password_is_stored(self, logged_in, make_context):
        logged_in.on("keyvault", "show").on("keyvault", "secret", "set")

        with patch(
            "gpsc_infra.deployment.workflow.prompt_new_password", return_value="Typed!Pass1"
        ):
            assert resolve_sql_password(make_context()) == "Typed!Pass1"

        stored = logged_in.called("keyvault", "secret", "set")[0]
        assert stored[stored.index("--name") + 1] == "sql-admin-password"
        assert stored[stored.index("--value") + 1] == "Typed!Pass1"

    def test_flag_password_without_vault(self, logged_in, make_context):
        assert resolve_sql_password(make_context(sql_password="Flag!Pass1")) == "Flag!Pass1"
        assert logged_in.called("keyvault", "secret", "set") == []


class TestOverrides:
    def test_backend_reusing_plan(self, make_context):
        ctx = make_context(deploy_plan=False, extra_parameters={"pythonVersion": "3.11"})

        overrides = module_overrides(ctx, get_module("backend"), None)

        assert overrides["deployAppServicePlan"] is False
        assert overrides["existingAppServicePlanName"] == "bo-gpsc-reports-dev-asp"
        assert overrides["pythonVersion"] == "3.11"
        assert "sqlAdminPassword" not in overrides

    def test_extra_parameters_win(self, make_context):
        ctx = make_context(extra_parameters={"location": "West Europe"})

        assert module_overrides(ctx, get_module("vnet"), None)["location"] == "West Europe"
