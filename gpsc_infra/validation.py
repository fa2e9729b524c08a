"""Offline and CLI-assisted validation of the IaC tree.

Checks the Azure CLI and Bicep tooling, compiles every template with
``az bicep build --stdout`` (no files written), confirms each module has
its template, and validates parameter files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

import structlog

from .azure_cli import AzureCli
from .deployment.modules import DEPLOYABLE, get_module
from .deployment.parameters import (
    STACK_PARAMETERS_DIR,
    STACK_REQUIRED_PARAMETERS,
    load_parameters,
    missing_parameters,
    parameters_filename,
)
from .environments import Environment
from .exceptions import AzureCliNotFoundError, ParametersFileError
from .timeout_config import Timeouts

logger = structlog.get_logger(__name__)


@dataclass
class CheckResult:
    category: str
    name: str
    passed: bool
    detail: str = ""


@dataclass
class ValidationReport:
    results: List[CheckResult] = field(default_factory=list)

    def add(self, category: str, name: str, passed: bool, detail: str = "") -> None:
        self.results.append(CheckResult(category, name, passed, detail))

    @property
    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if not r.passed]

    @property
    def ok(self) -> bool:
        return not self.failures


def check_prerequisites(cli: AzureCli, report: ValidationReport) -> bool:
    """Azure CLI and Bicep must both be available; returns True when they are."""
    try:
        az_ok = cli.succeeds(["version", "-o", "none"], timeout=Timeouts.VERSION_CHECK)
    except AzureCliNotFoundError as e:
        report.add("prerequisites", "azure-cli", False, e.message)
        return False
    report.add("prerequisites", "azure-cli", az_ok, "" if az_ok else "az version failed")
    if not az_ok:
        return False

    bicep_ok = cli.succeeds(["bicep", "version"], timeout=Timeouts.VERSION_CHECK)
    report.add(
        "prerequisites",
        "bicep",
        bicep_ok,
        "" if bicep_ok else "Run 'az bicep install'",
    )
    return bicep_ok


def template_files(iac_root: Path) -> List[Path]:
    return sorted(p for p in iac_root.rglob("*.bicep") if p.is_file())


def check_templates(cli: AzureCli, iac_root: Path, report: ValidationReport) -> None:
    for template in template_files(iac_root):
        result = cli.run(
            ["bicep", "build", "--file", str(template), "--stdout"],
            timeout=Timeouts.BICEP_BUILD,
        )
        detail = ""
        if not result.ok:
            lines = result.stderr.strip().splitlines()
            detail = lines[0] if lines else "bicep build failed"
        report.add("syntax", str(template.relative_to(iac_root)), result.ok, detail)


def check_module_structure(iac_root: Path, report: ValidationReport) -> None:
    for module in DEPLOYABLE:
        template = iac_root / get_module(module).template
        report.add(
            "structure",
            module,
            template.is_file(),
            "" if template.is_file() else f"missing {template}",
        )


def check_parameter_files(
    iac_root: Path, environments: Iterable[Environment], report: ValidationReport
) -> None:
    stack_dir = iac_root / STACK_PARAMETERS_DIR
    for environment in environments:
        filename = parameters_filename(environment)
        for path in sorted(iac_root.rglob(filename)):
            name = str(path.relative_to(iac_root))
            try:
                parameters = load_parameters(path)
            except ParametersFileError as e:
                report.add("parameters", name, False, e.message)
                continue
            if path.parent == stack_dir:
                missing = missing_parameters(parameters, STACK_REQUIRED_PARAMETERS)
                if missing:
                    report.add(
                        "parameters", name, False, f"missing: {', '.join(missing)}"
                    )
                    continue
            report.add("parameters", name, True)


def validate_all(
    cli: AzureCli, iac_root: Path, environments: Iterable[Environment]
) -> ValidationReport:
    report = ValidationReport()
    if not iac_root.is_dir():
        report.add("structure", str(iac_root), False, "IaC root directory not found")
        return report

    tools_ok = check_prerequisites(cli, report)
    check_module_structure(iac_root, report)
    if tools_ok:
        check_templates(cli, iac_root, report)
    check_parameter_files(iac_root, list(environments), report)
    logger.info(
        f"Validation finished: {len(report.results)} checks, {len(report.failures)} failed"
    )
    return report
