"""Checks that must pass before any resource is changed.

Missing authentication or a missing resource group is fatal; the module
checks in ``deployment.prechecks`` decide whether other gaps are fatal or
only warnings.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import structlog

from .azure_cli import AzureCli
from .exceptions import (
    AzureAuthenticationError,
    AzureSubscriptionError,
    ResourceGroupNotFoundError,
)
from .timeout_config import Timeouts

logger = structlog.get_logger(__name__)


@dataclass
class AccountInfo:
    """The Azure CLI's active account."""

    subscription_id: str
    subscription_name: str
    tenant_id: str
    user_name: str


def ensure_logged_in(cli: AzureCli) -> AccountInfo:
    """Return the active account or raise AzureAuthenticationError."""
    account = cli.query_json(["account", "show", "-o", "json"], timeout=Timeouts.ACCOUNT)
    if not isinstance(account, dict):
        raise AzureAuthenticationError("Not logged in to Azure CLI")
    return AccountInfo(
        subscription_id=account.get("id", ""),
        subscription_name=account.get("name", ""),
        tenant_id=account.get("tenantId", ""),
        user_name=(account.get("user") or {}).get("name", ""),
    )


def select_subscription(cli: AzureCli, subscription_id: Optional[str]) -> AccountInfo:
    """Make ``subscription_id`` the active subscription and return the account.

    With no subscription id the CLI's current subscription is kept.
    """
    account = ensure_logged_in(cli)
    if not subscription_id or account.subscription_id == subscription_id:
        return account

    result = cli.run(
        ["account", "set", "--subscription", subscription_id], timeout=Timeouts.ACCOUNT
    )
    if not result.ok:
        raise AzureSubscriptionError(
            f"Failed to set subscription: {result.stderr.strip()}",
            subscription_id=subscription_id,
        )
    account = ensure_logged_in(cli)
    logger.info(f"Using subscription {account.subscription_name} ({account.subscription_id})")
    return account


def resource_group_exists(cli: AzureCli, resource_group: str) -> bool:
    return cli.succeeds(["group", "show", "--name", resource_group])


def require_resource_group(cli: AzureCli, resource_group: str) -> None:
    if not resource_group_exists(cli, resource_group):
        raise ResourceGroupNotFoundError(resource_group)


def create_resource_group(
    cli: AzureCli, resource_group: str, location: str, tags: Dict[str, str]
) -> None:
    """Create ``resource_group`` with ``tags``; raises on failure."""
    args = ["group", "create", "--name", resource_group, "--location", location]
    if tags:
        args.extend(["--tags", *(f"{key}={value}" for key, value in tags.items())])
    cli.run(args, check=True)
    logger.info(f"Created resource group {resource_group} in {location}")


def subnet_exists(cli: AzureCli, resource_group: str, vnet: str, subnet: str) -> bool:
    return cli.succeeds(
        [
            "network",
            "vnet",
            "subnet",
            "show",
            "--resource-group",
            resource_group,
            "--vnet-name",
            vnet,
            "--name",
            subnet,
        ]
    )


def subnet_delegation(
    cli: AzureCli, resource_group: str, vnet: str, subnet: str
) -> Optional[str]:
    """Service name of the subnet's first delegation, if any."""
    return cli.query_text(
        [
            "network",
            "vnet",
            "subnet",
            "show",
            "--resource-group",
            resource_group,
            "--vnet-name",
            vnet,
            "--name",
            subnet,
            "--query",
            "delegations[0].serviceName",
            "-o",
            "tsv",
        ]
    )
