"""Tests for the clean command."""

import pytest
from click.testing import CliRunner

from gpsc_infra.cli import cli

from conftest import DEV_RG

RG_ID = f"/subscriptions/s/resourceGroups/{DEV_RG}/providers"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def populated_group(logged_in):
    logged_in.on("group", "show")
    logged_in.on(
        "resource", "list", contains=("[].{id:id, name:name, type:type}",),
        stdout=[
            {"id": f"{RG_ID}/Microsoft.Storage/storageAccounts/sa", "type": "Microsoft.Storage/storageAccounts"},
            {"id": f"{RG_ID}/Microsoft.Network/virtualNetworks/vnet", "type": "Microsoft.Network/virtualNetworks"},
        ],
    )
    return logged_in


class TestCleanResourceGroup:
    def test_dry_run_lists_only(self, runner, populated_group):
        result = runner.invoke(cli, ["clean", "resource-group", "-e", "dev", "-d"])

        assert result.exit_code == 0, result.output
        assert "Dry run: no resources were deleted" in result.output
        assert f"Resource group '{DEV_RG}' will be preserved" in result.output
        assert populated_group.mutating_calls == []

    def test_empties_group_but_keeps_it(self, runner, populated_group):
        populated_group.on("resource", "delete")

        result = runner.invoke(cli, ["clean", "resource-group", "-e", "dev", "-y"])

        assert result.exit_code == 0, result.output
        deletes = populated_group.called("resource", "delete")
        assert [d[-1].rsplit("/", 1)[-1] for d in deletes] == ["sa", "vnet"]
        assert populated_group.called("group", "delete") == []

    def test_delete_rg_flag(self, runner, populated_group):
        populated_group.on("group", "delete")

        result = runner.invoke(cli, ["clean", "resource-group", "-e", "dev", "-r"], input="DELETE\n")

        assert result.exit_code == 0, result.output
        assert populated_group.called("group", "delete") == [
            ["group", "delete", "--name", DEV_RG, "--yes", "--no-wait"]
        ]

    def test_delete_rg_requires_typed_phrase(self, runner, populated_group):
        result = runner.invoke(cli, ["clean", "resource-group", "-e", "dev", "-r"], input="delete\n")

        assert result.exit_code == 0
        assert "cancelled" in result.output
        assert populated_group.mutating_calls == []

    def test_failed_delete_still_exits_zero(self, runner, populated_group):
        populated_group.fail("resource", "delete", stderr="InUseSubnetCannotBeDeleted")

        result = runner.invoke(cli, ["clean", "resource-group", "-e", "dev", "-y"])

        assert result.exit_code == 0
        assert "InUseSubnetCannotBeDeleted" in result.output
        assert len(populated_group.called("resource", "delete")) == 2


class TestCleanModules:
    def test_missing_group_is_not_an_error(self, runner, logged_in):
        result = runner.invoke(cli, ["clean", "storage", "-e", "dev", "-y"])

        assert result.exit_code == 0
        assert "does not exist" in result.output
        assert logged_in.mutating_calls == []

    def test_delete_rg_ignored_for_modules(self, runner, logged_in):
        logged_in.on("group", "show")

        result = runner.invoke(cli, ["clean", "vnet", "-e", "dev", "-r", "-y"])

        assert result.exit_code == 0
        assert "ignoring it" in result.output
        assert logged_in.called("group", "delete") == []

    def test_storage_needs_both_confirmations(self, runner, logged_in):
        logged_in.on("group", "show").on("storage", "account", "show")
        logged_in.on("storage", "account", "delete")

        result = runner.invoke(
            cli, ["clean", "storage", "-e", "dev"], input="DELETE-ALL-STORAGE-DATA\nyes\n"
        )

        assert result.exit_code == 0, result.output
        assert len(logged_in.called("storage", "account", "delete")) == 1

    def test_backend_plan_guard(self, runner, logged_in):
        logged_in.on("group", "show").on("webapp", "show").on("appservice", "plan", "show")
        logged_in.on(
            "webapp", "show", contains=("appServicePlanId",),
            stdout=f"{RG_ID}/Microsoft.Web/serverfarms/bo-gpsc-reports-dev-asp\n",
        )

        result = runner.invoke(cli, ["clean", "backend", "-e", "dev", "-a", "-y"])

        assert result.exit_code == 1
        assert "still used" in result.output
        assert logged_in.mutating_calls == []
