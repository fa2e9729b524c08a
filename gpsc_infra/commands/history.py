"""CLI command for listing recorded deployments."""

from typing import Optional

import click

from ..console import print_info, print_table
from ..deployment_registry import DeploymentRegistry, DeploymentStatus
from .base import CONTEXT_SETTINGS, load_settings


@click.command(name="history", context_settings=CONTEXT_SETTINGS)
@click.option("-e", "--environment", default=None, help="Filter by environment")
@click.option("--module", default=None, help="Filter by module")
@click.option(
    "--status",
    type=click.Choice([s.value for s in DeploymentStatus]),
    default=None,
    help="Filter by status",
)
def history_command(
    environment: Optional[str], module: Optional[str], status: Optional[str]
) -> None:
    """List recorded validations and deployments, newest first."""
    registry = DeploymentRegistry(load_settings().registry_dir)
    deployments = registry.list_deployments(
        environment=environment,
        module=module,
        status=DeploymentStatus(status) if status else None,
    )
    if not deployments:
        print_info("No deployments recorded")
        return
    print_table(
        "Deployment history",
        ["ID", "Module", "Env", "Resource Group", "Status", "Recorded"],
        [
            (d["id"], d["module"], d["environment"], d["resource_group"], d["status"], d["recorded_at"])
            for d in deployments
        ],
    )
