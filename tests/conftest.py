"""Shared fixtures: a scripted ``az`` executable and an isolated workspace."""

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, List, Tuple

import pytest

from gpsc_infra.azure_cli import AzureCli, is_mutating
from gpsc_infra.config import InfraConfig
from gpsc_infra.deployment.context import DeployContext
from gpsc_infra.deployment.modules import MODULES
from gpsc_infra.deployment_registry import DeploymentRegistry
from gpsc_infra.environments import Environment

SUBSCRIPTION_ID = "11111111-2222-3333-4444-555555555555"
TENANT_ID = "99999999-8888-7777-6666-555555555555"
DEV_RG = "bo-gpsc-reports-dev"

ACCOUNT = {
    "id": SUBSCRIPTION_ID,
    "name": "GPS Reporting",
    "tenantId": TENANT_ID,
    "user": {"name": "operator@example.com", "type": "user"},
}


class AzScript:
    """Stand-in for ``subprocess.run`` that answers az commands from rules.

    Rules registered later take precedence. A command matches a rule when it
    starts with the rule's prefix and contains every ``contains`` token.
    Unmatched commands fail like a missing resource.
    """

    def __init__(self) -> None:
        self.rules: List[Tuple[Tuple[str, ...], Tuple[str, ...], int, str, str]] = []
        self.calls: List[List[str]] = []
        self.timeouts: List[Any] = []

    def on(
        self,
        *prefix: str,
        contains: Tuple[str, ...] = (),
        returncode: int = 0,
        stdout: Any = "",
        stderr: str = "",
    ) -> "AzScript":
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)
        self.rules.insert(0, (prefix, tuple(contains), returncode, stdout, stderr))
        return self

    def fail(self, *prefix: str, contains: Tuple[str, ...] = (), stderr: str = "ERROR: failed") -> "AzScript":
        return self.on(*prefix, contains=contains, returncode=1, stderr=stderr)

    def __call__(self, cmd: List[str], **kwargs: Any) -> "subprocess.CompletedProcess[str]":
        args = list(cmd[1:])
        self.calls.append(args)
        self.timeouts.append(kwargs.get("timeout"))
        for prefix, contains, returncode, stdout, stderr in self.rules:
            if tuple(args[: len(prefix)]) == prefix and all(t in args for t in contains):
                return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)
        return subprocess.CompletedProcess(cmd, 3, "", "ERROR: (ResourceNotFound) not found")

    def called(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    @property
    def mutating_calls(self) -> List[List[str]]:
        return [c for c in self.calls if is_mutating(c)]


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Run every test in its own directory with no user configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GPSC_CONFIG_PATH", str(tmp_path / "no-config.yaml"))
    for name in list(os.environ):
        if name.startswith("GPSC_INFRA_"):
            monkeypatch.delenv(name)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield tmp_path
    root.setLevel(level)
    # The CLI installs handlers bound to CliRunner streams.
    for handler in list(root.handlers):
        if handler not in handlers and not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def az(monkeypatch):
    """Scripted az CLI patched in place of subprocess.run."""
    script = AzScript()
    monkeypatch.setattr("gpsc_infra.azure_cli.subprocess.run", script)
    return script


@pytest.fixture
def logged_in(az):
    az.on("account", "show", stdout=ACCOUNT)
    az.on("account", "show", contains=("user.name",), stdout="operator@example.com\n")
    return az


@pytest.fixture
def iac_root(tmp_path) -> Path:
    """An IaC tree with every module template and dev parameter files."""
    root = tmp_path / "iac"
    for spec in MODULES.values():
        if not spec.template:
            continue
        template = root / spec.template
        template.parent.mkdir(parents=True, exist_ok=True)
        template.write_text("param environment string\n")
        parameters = template.parent / "parameters.dev.json"
        parameters.write_text(
            json.dumps(
                {
                    "parameters": {
                        "environment": {"value": "dev"},
                        "baseName": {"value": "bo-gpsc-reports"},
                        "sqlAdminUsername": {"value": "sqladmin"},
                        "sqlAdminPassword": {"value": "Str0ng!Passw0rd"},
                        "yourIpAddress": {"value": "203.0.113.10"},
                    }
                }
            )
        )
    return root


@pytest.fixture
def make_context(tmp_path, iac_root):
    """Build a DeployContext for the dev environment."""

    def factory(dry_run: bool = False, **kwargs: Any) -> DeployContext:
        config = InfraConfig(iac_root=iac_root, registry_dir=tmp_path / ".deployments")
        kwargs.setdefault(
            "registry", None if dry_run else DeploymentRegistry(config.registry_dir)
        )
        return DeployContext(
            config=config,
            environment=Environment.DEV,
            resource_group=DEV_RG,
            location="East US",
            cli=AzureCli(dry_run=dry_run),
            **kwargs,
        )

    return factory
