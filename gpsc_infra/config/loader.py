"""
Layered configuration for the infrastructure toolkit.

Later layers win: built-in defaults, then the YAML file, then
``GPSC_INFRA_*`` environment variables, then command-line flags.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import InfraConfig

TRUE_VALUES = ("true", "yes")
FALSE_VALUES = ("false", "no")


def merge_layers(lower: Dict[str, Any], upper: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``lower`` overlaid with ``upper``; nested mappings merge key by key."""
    merged = dict(lower)
    for key, value in upper.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = merge_layers(below, value)
        else:
            merged[key] = value
    return merged


def env_scalar(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return raw


class ConfigLoader:
    """Builds an InfraConfig from file, environment and flag layers.

    ``GPSC_CONFIG_PATH`` points at the YAML file when no path is given.
    Nested settings use ``__`` in environment names, for example
    ``GPSC_INFRA_ENVIRONMENTS__PROD__RESOURCE_GROUP``.
    """

    DEFAULT_CONFIG_FILE = Path.home() / ".config" / "gpsc-infra" / "config.yaml"
    ENV_PREFIX = "GPSC_INFRA_"

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.default_path()

    @classmethod
    def default_path(cls) -> Path:
        configured = os.environ.get("GPSC_CONFIG_PATH")
        return Path(configured).expanduser() if configured else cls.DEFAULT_CONFIG_FILE

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> InfraConfig:
        """Merge every layer and validate the result.

        Args:
            overrides: Flag values; ``None`` means the flag was not given and
                leaves the lower layers untouched.

        Raises:
            ConfigurationError: If a layer cannot be read or the merged
                values fail validation
        """
        settings: Dict[str, Any] = {}
        if self.config_path.exists():
            settings = merge_layers(settings, self.read_file(self.config_path))
        settings = merge_layers(settings, self.read_environment())
        flags = {k: v for k, v in (overrides or {}).items() if v is not None}
        settings = merge_layers(settings, flags)

        try:
            return InfraConfig.model_validate(settings)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                config_path=str(self.config_path),
                cause=e,
            ) from e

    def read_file(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in {path}: {e}", config_path=str(path), cause=e
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file {path}: {e}", config_path=str(path), cause=e
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {path} must contain a mapping", config_path=str(path)
            )
        return data

    def read_environment(self) -> Dict[str, Any]:
        settings: Dict[str, Any] = {}
        for name, raw in os.environ.items():
            if not name.startswith(self.ENV_PREFIX):
                continue
            *parents, leaf = name[len(self.ENV_PREFIX) :].lower().split("__")
            node = settings
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = env_scalar(raw)
        return settings


def load_config(
    config_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None
) -> InfraConfig:
    """Load configuration with a fresh ConfigLoader."""
    return ConfigLoader(config_path).load(overrides)
