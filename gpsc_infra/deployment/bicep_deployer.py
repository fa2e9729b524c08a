"""Bicep deployment operations.

This module handles validation and deployment of Bicep templates to a
resource group, and reading back deployment outputs.

Philosophy:
- Single responsibility: az deployment group calls only
- Every call goes through AzureCli so timeouts and the dry-run guard apply
- Failures surface the provider diagnostic unchanged
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..azure_cli import AzureCli
from ..exceptions import DeploymentError, ProviderCommandError
from ..timeout_config import Timeouts
from .parameters import format_overrides

logger = structlog.get_logger(__name__)


def deployment_name(module: str, environment: str, now: Optional[datetime] = None) -> str:
    """Return ``<module>-<env>-<YYYYmmdd-HHMMSS>``."""
    timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{module}-{environment}-{timestamp}"


def _template_args(
    resource_group: str,
    template_file: Path,
    parameters_file: Optional[Path],
    overrides: Dict[str, Any],
) -> List[str]:
    args = [
        "--resource-group",
        resource_group,
        "--template-file",
        str(template_file),
    ]
    if parameters_file is not None:
        args.extend(["--parameters", f"@{parameters_file}"])
    rendered = format_overrides(overrides)
    if rendered:
        args.extend(["--parameters", *rendered])
    return args


def validate_template(
    cli: AzureCli,
    module: str,
    resource_group: str,
    template_file: Path,
    parameters_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> dict:
    """Validate a Bicep template against a resource group.

    Returns:
        Result dictionary with:
            - status: 'validated'
            - output: Command output string
            - format: 'bicep'

    Raises:
        DeploymentError: If validation fails or times out
    """
    logger.info(f"Validating Bicep template {template_file.name} for {module}")
    cmd = ["deployment", "group", "validate"] + _template_args(
        resource_group, template_file, parameters_file, overrides or {}
    )

    try:
        result = cli.run(cmd, timeout=Timeouts.BICEP_VALIDATE, operation="bicep_validate")
    except ProviderCommandError as e:
        raise DeploymentError(
            f"Bicep validation of {module} did not complete: {e.message}",
            module=module,
            cause=e,
        ) from e

    if not result.ok:
        raise DeploymentError(
            f"Bicep validation failed: {result.stderr.strip()}", module=module
        )

    return {
        "status": "validated",
        "output": result.stdout,
        "format": "bicep",
    }


def create_deployment(
    cli: AzureCli,
    module: str,
    name: str,
    resource_group: str,
    template_file: Path,
    parameters_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> dict:
    """Deploy a Bicep template as a named resource-group deployment.

    Returns:
        Result dictionary with:
            - status: 'deployed'
            - output: Command output string
            - format: 'bicep'
            - deployment_name: ``name``

    Raises:
        DeploymentError: If the deployment fails or times out
    """
    logger.info(f"Deploying Bicep template {template_file.name} as {name}")
    cmd = ["deployment", "group", "create", "--name", name] + _template_args(
        resource_group, template_file, parameters_file, overrides or {}
    )

    try:
        result = cli.run(cmd, timeout=Timeouts.BICEP_DEPLOY, operation="bicep_deploy")
    except ProviderCommandError as e:
        raise DeploymentError(
            f"Bicep deployment of {module} did not complete: {e.message}",
            module=module,
            deployment_name=name,
            cause=e,
        ) from e

    if not result.ok:
        raise DeploymentError(
            f"Bicep deployment failed: {result.stderr.strip()}",
            module=module,
            deployment_name=name,
            recovery_suggestion=(
                f"Inspect with: az deployment group show --resource-group "
                f"{resource_group} --name {name}"
            ),
        )

    return {
        "status": "deployed",
        "output": result.stdout,
        "format": "bicep",
        "deployment_name": name,
    }


def get_deployment_outputs(cli: AzureCli, resource_group: str, name: str) -> Dict[str, Any]:
    """Return the ``properties.outputs`` object of a deployment, or {}."""
    outputs = cli.query_json(
        [
            "deployment",
            "group",
            "show",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--query",
            "properties.outputs",
            "-o",
            "json",
        ]
    )
    if not isinstance(outputs, dict):
        logger.warning(f"No outputs available for deployment {name}")
        return {}
    return outputs


def list_running_deployments(cli: AzureCli, resource_group: str) -> List[str]:
    """Names of deployments still running in ``resource_group``."""
    names = cli.query_text(
        [
            "deployment",
            "group",
            "list",
            "--resource-group",
            resource_group,
            "--query",
            "[?properties.provisioningState=='Running'].name",
            "-o",
            "tsv",
        ]
    )
    return names.split() if names else []


__all__ = [
    "create_deployment",
    "deployment_name",
    "get_deployment_outputs",
    "list_running_deployments",
    "validate_template",
]
