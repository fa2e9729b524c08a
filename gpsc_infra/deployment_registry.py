"""Local history of module deployments.

Each validate/deploy run is appended to ``<registry_dir>/registry.json`` so an
operator can see what was deployed where, with which outputs.
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class DeploymentStatus(Enum):
    """Status of a recorded deployment."""

    VALIDATED = "validated"
    DEPLOYED = "deployed"
    FAILED = "failed"
    CLEANED = "cleaned"


class DeploymentRegistry:
    """Append-only JSON history of validations and deployments.

    A missing or corrupt file starts an empty history; records are written
    through on every ``record`` call.
    """

    def __init__(self, registry_dir: Path = Path(".deployments")):
        self.registry_dir = registry_dir
        self.registry_file = registry_dir / "registry.json"
        self.registry: Dict[str, List[Dict[str, Any]]] = self._read()

    def _read(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.registry_file.exists():
            return {"deployments": []}
        try:
            with open(self.registry_file) as f:
                return json.load(f)
        except json.JSONDecodeError:
            logger.error(f"Unreadable deployment history in {self.registry_file}; starting fresh")
            return {"deployments": []}

    def _write(self) -> None:
        self.registry_dir.mkdir(parents=True, exist_ok=True)
        with open(self.registry_file, "w") as f:
            json.dump(self.registry, f, indent=2, default=str)

    def record(
        self,
        deployment_name: str,
        module: str,
        environment: str,
        resource_group: str,
        status: DeploymentStatus,
        outputs: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Append a deployment record and persist the registry.

        Returns:
            The stored record
        """
        entry = {
            "id": deployment_name,
            "module": module,
            "environment": environment,
            "resource_group": resource_group,
            "status": status.value,
            "recorded_at": datetime.now().isoformat(),
            "outputs": outputs or {},
            "error": error,
        }
        self.registry["deployments"].append(entry)
        self._write()
        logger.info(f"Recorded {status.value} deployment {deployment_name}")
        return entry

    def get_deployment(self, deployment_id: str) -> Optional[Dict[str, Any]]:
        return next(
            (d for d in self.registry["deployments"] if d["id"] == deployment_id), None
        )

    def list_deployments(
        self,
        environment: Optional[str] = None,
        module: Optional[str] = None,
        status: Optional[DeploymentStatus] = None,
    ) -> List[Dict[str, Any]]:
        """List deployment records, newest first, with optional filters."""
        deployments = list(self.registry["deployments"])

        if environment:
            deployments = [d for d in deployments if d["environment"] == environment]
        if module:
            deployments = [d for d in deployments if d["module"] == module]
        if status:
            deployments = [d for d in deployments if d["status"] == status.value]

        deployments.sort(key=lambda x: x["recorded_at"], reverse=True)
        return deployments

    def latest(self, module: str, environment: str) -> Optional[Dict[str, Any]]:
        """Most recent successful deployment of ``module`` in ``environment``."""
        for deployment in self.list_deployments(
            environment=environment, module=module, status=DeploymentStatus.DEPLOYED
        ):
            return deployment
        return None
