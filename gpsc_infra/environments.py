"""Deployment environments and the resource naming convention.

All resource names derive from ``<base_name>-<environment>``; nothing else in
the toolkit builds a resource name by hand.
"""

import ipaddress
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .exceptions import InvalidEnvironmentError


class Environment(str, Enum):
    """Supported deployment environments."""

    DEV = "dev"
    UAT = "uat"
    PROD = "prod"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


DEFAULT_VNET_ADDRESS_SPACES: Dict[Environment, str] = {
    Environment.DEV: "10.100.0.0/16",
    Environment.UAT: "10.200.0.0/16",
    Environment.PROD: "10.50.0.0/16",
}

STORAGE_ACCOUNT_MAX_LENGTH = 24


def parse_environment(value: Optional[str]) -> Environment:
    """Return the Environment for ``value`` or raise InvalidEnvironmentError.

    Matching is exact: ``Dev`` or ``production`` are rejected.
    """
    try:
        return Environment(value)
    except ValueError as e:
        raise InvalidEnvironmentError(value, Environment.values(), cause=e) from e


@dataclass(frozen=True)
class NetworkLayout:
    """Address plan of an environment's virtual network."""

    address_space: str

    def _subnet(self, index: int) -> str:
        network = ipaddress.ip_network(self.address_space)
        subnets = list(network.subnets(new_prefix=24))
        return str(subnets[index])

    @property
    def app_service_subnet(self) -> str:
        return self._subnet(1)

    @property
    def private_endpoint_subnet(self) -> str:
        return self._subnet(2)

    @property
    def management_subnet(self) -> str:
        return self._subnet(3)


@dataclass(frozen=True)
class ResourceNames:
    """Names of every resource the toolkit manages in one environment."""

    base_name: str
    environment: Environment

    @property
    def prefix(self) -> str:
        return f"{self.base_name}-{self.environment.value}"

    @property
    def default_resource_group(self) -> str:
        return self.prefix

    @property
    def vnet(self) -> str:
        return f"{self.prefix}-vnet"

    @property
    def app_service_subnet(self) -> str:
        return f"{self.prefix}-private-subnet"

    @property
    def private_endpoint_subnet(self) -> str:
        return f"{self.prefix}-pe-subnet"

    @property
    def management_subnet(self) -> str:
        return f"{self.prefix}-mgmt-subnet"

    @property
    def nsg(self) -> str:
        return f"{self.prefix}-nsg"

    @property
    def app_service_plan(self) -> str:
        return f"{self.prefix}-asp"

    @property
    def frontend_app(self) -> str:
        return f"{self.prefix}-frontend"

    @property
    def backend_app(self) -> str:
        return f"{self.prefix}-backend"

    @property
    def sql_server(self) -> str:
        return f"{self.prefix}-sqlserver"

    @property
    def sql_database(self) -> str:
        return f"{self.prefix}-database"

    @property
    def key_vault(self) -> str:
        return f"{self.prefix}-kv"

    @property
    def app_insights(self) -> str:
        return f"{self.prefix}-insights"

    @property
    def log_analytics(self) -> str:
        return f"{self.prefix}-logs"

    @property
    def app_gateway(self) -> str:
        return f"{self.prefix}-appgw"

    @property
    def storage_account(self) -> str:
        # Storage account names allow only lowercase letters and digits.
        name = f"{self.prefix.replace('-', '')}storage".lower()
        return name[:STORAGE_ACCOUNT_MAX_LENGTH]
