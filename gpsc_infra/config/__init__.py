"""Configuration models and loading."""

from .loader import ConfigLoader, load_config
from .models import EnvironmentProfile, InfraConfig

__all__ = ["ConfigLoader", "EnvironmentProfile", "InfraConfig", "load_config"]
