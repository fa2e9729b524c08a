"""Per-invocation deployment settings shared by workflow steps."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..azure_cli import AzureCli
from ..config.models import InfraConfig
from ..deployment_registry import DeploymentRegistry
from ..environments import Environment, NetworkLayout, ResourceNames


@dataclass
class DeployContext:
    """Everything a module deployment needs to know about its target."""

    config: InfraConfig
    environment: Environment
    resource_group: str
    location: str
    cli: AzureCli
    subscription_id: Optional[str] = None
    assume_yes: bool = False
    sql_password: Optional[str] = None
    deploy_plan: bool = True
    extra_parameters: Dict[str, Any] = field(default_factory=dict)
    registry: Optional[DeploymentRegistry] = None

    @property
    def dry_run(self) -> bool:
        return self.cli.dry_run

    @property
    def names(self) -> ResourceNames:
        return self.config.names(self.environment)

    @property
    def network(self) -> NetworkLayout:
        return self.config.network(self.environment)

    @property
    def iac_root(self) -> Path:
        return self.config.iac_root
