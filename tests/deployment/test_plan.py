"""Tests for module dependency ordering."""

import pytest

from gpsc_infra.deployment.modules import DEPLOYABLE, MODULES, STACK_MODULES, get_module
from gpsc_infra.deployment.plan import build_dependency_graph, deployment_order, deployment_tiers
from gpsc_infra.exceptions import GpscInfraError


class TestDeploymentOrder:
    def test_full_order(self):
        assert deployment_order() == [
            "vnet",
            "key-vault",
            "storage",
            "database",
            "app-insights",
            "app-service",
            "app-gateway",
            "iam",
        ]

    def test_every_dependency_comes_first(self):
        order = deployment_order()
        for module in order:
            for dependency in MODULES[module].depends_on:
                if dependency in order:
                    assert order.index(dependency) < order.index(module)

    def test_subset_keeps_dependency_order(self):
        assert deployment_order(["app-service", "vnet", "database"]) == [
            "vnet",
            "database",
            "app-service",
        ]

    def test_unknown_module(self):
        with pytest.raises(GpscInfraError, match="Unknown modules: bogus"):
            deployment_order(["vnet", "bogus"])


def test_tiers():
    assert deployment_tiers() == [
        ["vnet"],
        ["key-vault", "storage", "app-insights"],
        ["database"],
        ["app-service"],
        ["app-gateway"],
        ["iam"],
    ]


def test_graph_is_acyclic():
    graph = build_dependency_graph(STACK_MODULES)
    assert graph.number_of_nodes() == len(STACK_MODULES)


def test_catalogue():
    assert "iam" not in DEPLOYABLE
    assert {"vnet", "backend", "frontend", "stack"} <= set(DEPLOYABLE)
    assert get_module("vnet").creates_resource_group
    assert get_module("database").needs_sql_password
    with pytest.raises(GpscInfraError):
        get_module("nope")
