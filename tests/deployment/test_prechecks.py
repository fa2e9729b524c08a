"""Tests for module prechecks."""

from unittest.mock import patch

import pytest

from gpsc_infra.deployment.prechecks import (
    WEB_DELEGATION,
    require_app_subnet,
    require_existing_plan,
    require_existing_plan_unless_deployed,
    run_prechecks,
)
from gpsc_infra.exceptions import PreconditionError


class TestRequireAppSubnet:
    def test_missing_subnet(self, az, make_context):
        az.on("network", "vnet", "show")

        with pytest.raises(PreconditionError, match="private-subnet"):
            require_app_subnet(make_context())

    def test_delegated_subnet(self, az, make_context):
        az.on("network", "vnet", "show")
        az.on("network", "vnet", "subnet", "show")
        az.on("network", "vnet", "subnet", "show", contains=("delegations[0].serviceName",), stdout=WEB_DELEGATION)

        with patch("gpsc_infra.deployment.prechecks.print_warning") as mock_warning:
            require_app_subnet(make_context())

        mock_warning.assert_not_called()

    def test_undelegated_subnet_only_warns(self, az, make_context):
        az.on("network", "vnet", "show")
        az.on("network", "vnet", "subnet", "show")

        with patch("gpsc_infra.deployment.prechecks.print_warning") as mock_warning:
            require_app_subnet(make_context())

        assert "not delegated" in mock_warning.call_args[0][0]


class TestAppServicePlan:
    def test_plan_only_required_when_reused(self, az, make_context):
        require_existing_plan_unless_deployed(make_context(deploy_plan=True))

        with pytest.raises(PreconditionError, match="-asp"):
            require_existing_plan_unless_deployed(make_context(deploy_plan=False))

    def test_frontend_needs_plan(self, az, make_context):
        with pytest.raises(PreconditionError):
            require_existing_plan(make_context())

        az.on("appservice", "plan", "show")
        require_existing_plan(make_context())


def test_frontend_prechecks_warn_about_missing_backend(az, make_context):
    az.on("network", "vnet", "show").on("network", "vnet", "subnet", "show")
    az.on("appservice", "plan", "show")

    with patch("gpsc_infra.deployment.prechecks.print_warning") as mock_warning:
        run_prechecks("frontend", make_context())

    messages = [call[0][0] for call in mock_warning.call_args_list]
    assert any("Backend app" in m for m in messages)


def test_modules_without_prechecks(az, make_context):
    run_prechecks("vnet", make_context())
    assert az.calls == []
