"""Tests for environments and the resource naming convention."""

import pytest

from gpsc_infra.environments import (
    Environment,
    NetworkLayout,
    ResourceNames,
    parse_environment,
)
from gpsc_infra.exceptions import InvalidEnvironmentError


class TestParseEnvironment:
    @pytest.mark.parametrize("value", ["dev", "uat", "prod"])
    def test_accepts_supported_values(self, value):
        assert parse_environment(value).value == value

    @pytest.mark.parametrize("value", ["Dev", "production", "staging", "", None])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidEnvironmentError, match="Must be one of: dev, uat, prod"):
            parse_environment(value)


class TestResourceNames:
    def test_dev_names(self):
        names = ResourceNames("bo-gpsc-reports", Environment.DEV)

        assert names.prefix == "bo-gpsc-reports-dev"
        assert names.default_resource_group == "bo-gpsc-reports-dev"
        assert names.vnet == "bo-gpsc-reports-dev-vnet"
        assert names.app_service_subnet == "bo-gpsc-reports-dev-private-subnet"
        assert names.private_endpoint_subnet == "bo-gpsc-reports-dev-pe-subnet"
        assert names.app_service_plan == "bo-gpsc-reports-dev-asp"
        assert names.frontend_app == "bo-gpsc-reports-dev-frontend"
        assert names.backend_app == "bo-gpsc-reports-dev-backend"
        assert names.sql_server == "bo-gpsc-reports-dev-sqlserver"
        assert names.sql_database == "bo-gpsc-reports-dev-database"
        assert names.key_vault == "bo-gpsc-reports-dev-kv"

    def test_storage_account_name_is_compact(self):
        names = ResourceNames("bo-gpsc-reports", Environment.DEV)

        assert names.storage_account == "bogpscreportsdevstorage"

    def test_storage_account_name_is_truncated(self):
        names = ResourceNames("a-very-long-project-base-name", Environment.PROD)

        assert len(names.storage_account) == 24
        assert names.storage_account.isalnum()
        assert names.storage_account.islower()


class TestNetworkLayout:
    def test_subnets_follow_the_address_space(self):
        layout = NetworkLayout("10.100.0.0/16")

        assert layout.app_service_subnet == "10.100.1.0/24"
        assert layout.private_endpoint_subnet == "10.100.2.0/24"
        assert layout.management_subnet == "10.100.3.0/24"
