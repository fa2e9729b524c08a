"""Template deployment for infrastructure modules."""

from .context import DeployContext
from .modules import DEPLOYABLE, MODULES, get_module
from .plan import deployment_order, deployment_tiers
from .workflow import DeploymentResult, deploy_module

__all__ = [
    "DEPLOYABLE",
    "DeployContext",
    "DeploymentResult",
    "MODULES",
    "deploy_module",
    "deployment_order",
    "deployment_tiers",
    "get_module",
]
