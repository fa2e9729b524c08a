"""
Configuration models for the infrastructure toolkit.

Unknown keys are rejected so a typo in the YAML file fails loudly
rather than silently falling back to a default.
"""

import ipaddress
import re
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..environments import (
    DEFAULT_VNET_ADDRESS_SPACES,
    Environment,
    NetworkLayout,
    ResourceNames,
)

GUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
RESOURCE_GROUP_PATTERN = re.compile(r"^[a-zA-Z0-9_.()-]{1,90}$")


class EnvironmentProfile(BaseModel):
    """Per-environment overrides of the naming defaults."""

    resource_group: Optional[str] = Field(
        default=None,
        description="Resource group name (default: <base_name>-<env>)",
    )
    location: Optional[str] = Field(
        default=None,
        description="Azure region overriding the global default",
    )
    vnet_address_space: Optional[str] = Field(
        default=None,
        description="VNet address space, must be a /16",
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("resource_group")
    @classmethod
    def validate_resource_group(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not RESOURCE_GROUP_PATTERN.match(v):
            raise ValueError(f"Invalid resource group name: {v}")
        return v

    @field_validator("vnet_address_space")
    @classmethod
    def validate_address_space(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        network = ipaddress.ip_network(v)
        if network.prefixlen != 16:
            raise ValueError(f"VNet address space must be a /16, got {v}")
        return str(network)


class InfraConfig(BaseModel):
    """Root configuration for the toolkit."""

    base_name: str = Field(
        default="bo-gpsc-reports",
        description="Prefix shared by every resource name",
    )
    project_tag: str = Field(
        default="BO-GPSC-Reports",
        description="Value of the Project tag applied to created resource groups",
    )
    default_location: str = Field(default="East US")
    subscription_id: Optional[str] = Field(
        default=None,
        description="Subscription to select; the CLI's current one when unset",
    )
    iac_root: Path = Field(
        default=Path("iac"),
        description="Directory holding modules/ and deployments/ Bicep templates",
    )
    registry_dir: Path = Field(
        default=Path(".deployments"),
        description="Where deployment history is recorded",
    )
    environments: Dict[Environment, EnvironmentProfile] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("base_name")
    @classmethod
    def validate_base_name(cls, v: str) -> str:
        if not re.match(r"^[a-z0-9][a-z0-9-]{1,38}[a-z0-9]$", v):
            raise ValueError(
                "base_name must be 3-40 lowercase letters, digits or hyphens"
            )
        return v

    @field_validator("subscription_id")
    @classmethod
    def validate_subscription_id(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not GUID_PATTERN.match(v):
            raise ValueError(f"subscription_id must be a GUID, got {v}")
        return v

    def profile(self, environment: Environment) -> EnvironmentProfile:
        return self.environments.get(environment, EnvironmentProfile())

    def names(self, environment: Environment) -> ResourceNames:
        return ResourceNames(self.base_name, environment)

    def resource_group(self, environment: Environment) -> str:
        return (
            self.profile(environment).resource_group
            or self.names(environment).default_resource_group
        )

    def location(self, environment: Environment) -> str:
        return self.profile(environment).location or self.default_location

    def network(self, environment: Environment) -> NetworkLayout:
        return NetworkLayout(
            self.profile(environment).vnet_address_space
            or DEFAULT_VNET_ADDRESS_SPACES[environment]
        )
