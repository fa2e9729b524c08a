"""Tests for full-stack deployment modes."""

from unittest.mock import patch

import pytest

from gpsc_infra.deployment.modules import ROLE_ASSIGNMENT_KIND, get_module
from gpsc_infra.deployment.orchestrator import grant_app_identities, run_full_deployment
from gpsc_infra.deployment.plan import deployment_order
from gpsc_infra.deployment.workflow import DeploymentResult
from gpsc_infra.exceptions import (
    DeploymentError,
    GpscInfraError,
    ResourceGroupNotFoundError,
    RoleAssignmentError,
)

from conftest import SUBSCRIPTION_ID


@pytest.fixture
def all_registered(logged_in):
    logged_in.on("provider", "show", stdout="Registered\n")
    return logged_in


class TestModes:
    def test_unknown_mode(self, logged_in, make_context):
        with pytest.raises(GpscInfraError, match="Unknown mode"):
            run_full_deployment(make_context(), "yolo")

    def test_setup_registers_providers_only(self, all_registered, make_context):
        assert run_full_deployment(make_context(), "setup") == []
        assert all_registered.called("deployment") == []

    def test_validate_continues_past_failures(self, all_registered, make_context):
        def fake_deploy(ctx, module):
            if module == "storage":
                raise GpscInfraError("boom")
            return DeploymentResult(module, "validated")

        with patch(
            "gpsc_infra.deployment.orchestrator.deploy_module", side_effect=fake_deploy
        ) as mock_deploy:
            results = run_full_deployment(make_context(), "validate")

        statuses = {r.module: r.status for r in results}
        assert statuses["storage"] == "failed"
        assert statuses["vnet"] == "validated"
        assert statuses["app-gateway"] == "validated"
        assert statuses["iam"] == "validated"
        assert all(call[0][0].dry_run for call in mock_deploy.call_args_list)
        assert all_registered.mutating_calls == []

    def test_dry_run_deploy_validates(self, all_registered, make_context):
        all_registered.on("group", "show").on("deployment", "group", "validate")

        results = run_full_deployment(make_context(dry_run=True), "deploy", ["vnet", "storage"])

        assert [r.status for r in results] == ["validated", "validated"]
        assert all_registered.mutating_calls == []

    def test_deploy_stops_when_cancelled(self, all_registered, make_context):
        all_registered.on("group", "show").on("deployment", "group", "validate")

        with patch("gpsc_infra.deployment.orchestrator.deploy_module") as mock_deploy:
            mock_deploy.side_effect = [
                DeploymentResult("vnet", "deployed", "vnet-dev-1"),
                DeploymentResult("key-vault", "cancelled"),
            ]
            results = run_full_deployment(make_context(), "deploy")

        templated = [m for m in deployment_order() if get_module(m).kind != ROLE_ASSIGNMENT_KIND]
        assert [r.module for r in results] == ["vnet", "key-vault"]
        assert mock_deploy.call_count == 2
        assert len(all_registered.called("deployment", "group", "validate")) == len(templated)

    def test_every_template_validated_before_first_create(self, all_registered, make_context):
        all_registered.on("group", "show")
        all_registered.on("deployment", "group", "validate").on("deployment", "group", "create")

        results = run_full_deployment(make_context(assume_yes=True), "deploy", ["vnet", "storage"])

        sequence = [
            c[2]
            for c in all_registered.calls
            if c[:2] == ["deployment", "group"] and c[2] in ("validate", "create")
        ]
        assert sequence == ["validate", "validate", "create", "create"]
        assert [r.status for r in results] == ["deployed", "deployed"]

    def test_validation_failure_blocks_deployment(self, all_registered, make_context):
        all_registered.on("group", "show")
        all_registered.fail("deployment", "group", "validate", stderr="InvalidTemplate")

        with patch("gpsc_infra.deployment.orchestrator.deploy_module") as mock_deploy:
            with pytest.raises(DeploymentError, match="Validation failed for vnet, storage"):
                run_full_deployment(make_context(assume_yes=True), "deploy", ["vnet", "storage"])

        mock_deploy.assert_not_called()
        assert all_registered.called("provider") == []
        assert all_registered.mutating_calls == []

    def test_missing_group_created_before_validation(self, all_registered, make_context):
        all_registered.on("group", "create").on("deployment", "group", "validate")

        with patch("gpsc_infra.deployment.orchestrator.deploy_module") as mock_deploy:
            mock_deploy.return_value = DeploymentResult("vnet", "deployed")
            run_full_deployment(make_context(assume_yes=True), "deploy", ["vnet"])

        commands = [tuple(c[:3]) for c in all_registered.calls]
        assert commands.index(("group", "create", "--name")) < commands.index(
            ("deployment", "group", "validate")
        )

    def test_missing_group_without_vnet_in_plan(self, all_registered, make_context):
        with pytest.raises(ResourceGroupNotFoundError):
            run_full_deployment(make_context(assume_yes=True), "deploy", ["storage"])

        assert all_registered.mutating_calls == []
        assert all_registered.called("deployment") == []

    def test_deploy_failure_propagates(self, all_registered, make_context):
        all_registered.on("group", "show").on("deployment", "group", "validate")

        with patch("gpsc_infra.deployment.orchestrator.deploy_module") as mock_deploy:
            mock_deploy.side_effect = GpscInfraError("boom")
            with pytest.raises(GpscInfraError, match="boom"):
                run_full_deployment(make_context(), "deploy", ["vnet"])

    def test_clean_deploy_keeps_resource_group(self, all_registered, make_context):
        all_registered.on("group", "show")
        all_registered.on(
            "resource",
            "list",
            stdout=[
                {
                    "id": "/subscriptions/s/resourceGroups/rg/providers/Microsoft.Storage/storageAccounts/sa",
                    "name": "sa",
                    "type": "Microsoft.Storage/storageAccounts",
                }
            ],
        )
        all_registered.on("resource", "list", contains=("--resource-type",), stdout="")
        all_registered.on("resource", "delete").on("deployment", "group", "validate")

        with patch("gpsc_infra.deployment.orchestrator.deploy_module") as mock_deploy:
            mock_deploy.return_value = DeploymentResult("vnet", "deployed")
            run_full_deployment(make_context(assume_yes=True), "clean-deploy", ["vnet"])

        assert all_registered.called("resource", "delete")
        assert all_registered.called("group", "delete") == []


class TestGrantAppIdentities:
    def test_dry_run_lists_without_assigning(self, logged_in, make_context):
        logged_in.on("webapp", "identity", "show", stdout="principal-1\n")

        assignments = grant_app_identities(make_context(dry_run=True))

        assert len(assignments) == 3
        assert all(SUBSCRIPTION_ID in a.scope for a in assignments)
        assert logged_in.mutating_calls == []

    def test_failure_raises(self, logged_in, make_context):
        logged_in.on("webapp", "identity", "show", stdout="principal-1\n")
        logged_in.fail("role", "assignment", "create", stderr="AuthorizationFailed")

        with pytest.raises(RoleAssignmentError):
            grant_app_identities(make_context())
