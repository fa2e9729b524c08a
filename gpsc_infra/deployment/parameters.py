"""Parameter file discovery, loading, overrides and generation.

Parameter files follow the ARM layout: a JSON document with a top-level
``parameters`` object whose entries are ``{"value": ...}``.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..environments import Environment
from ..exceptions import ParametersFileError

logger = structlog.get_logger(__name__)

SCHEMA_URL = (
    "https://schema.management.azure.com/schemas/2019-04-01/"
    "deploymentParameters.json#"
)
STACK_PARAMETERS_DIR = Path("deployments") / "gpscreports"
STACK_REQUIRED_PARAMETERS = [
    "environment",
    "baseName",
    "sqlAdminUsername",
    "sqlAdminPassword",
    "yourIpAddress",
]


def parameters_filename(environment: Environment) -> str:
    return f"parameters.{environment.value}.json"


def candidate_paths(
    iac_root: Path, template: Path, environment: Environment
) -> List[Path]:
    """Locations searched for a module's parameters file, in priority order."""
    filename = parameters_filename(environment)
    return [
        template.parent / filename,
        iac_root / STACK_PARAMETERS_DIR / filename,
    ]


def find_parameters_file(
    iac_root: Path, template: Path, environment: Environment
) -> Optional[Path]:
    """Return the first existing parameters file, or None."""
    for path in candidate_paths(iac_root, template, environment):
        if path.is_file():
            logger.debug(f"Using parameters file {path}")
            return path
    return None


def load_parameters(path: Path) -> Dict[str, Any]:
    """Load and return the ``parameters`` object of a parameters file.

    Raises:
        ParametersFileError: If the file is missing, not JSON, or lacks a
            ``parameters`` object
    """
    try:
        with open(path) as f:
            document = json.load(f)
    except FileNotFoundError as e:
        raise ParametersFileError(
            f"Parameters file not found: {path}", path=str(path), cause=e
        ) from e
    except json.JSONDecodeError as e:
        raise ParametersFileError(
            f"Parameters file is not valid JSON: {path}", path=str(path), cause=e
        ) from e

    parameters = document.get("parameters") if isinstance(document, dict) else None
    if not isinstance(parameters, dict):
        raise ParametersFileError(
            f"Parameters file has no 'parameters' object: {path}", path=str(path)
        )
    return parameters


def missing_parameters(parameters: Dict[str, Any], required: List[str]) -> List[str]:
    """Names in ``required`` that are absent or have no ``value``."""
    missing = []
    for name in required:
        entry = parameters.get(name)
        if not isinstance(entry, dict) or ("value" not in entry and "reference" not in entry):
            missing.append(name)
    return missing


def format_overrides(overrides: Dict[str, Any]) -> List[str]:
    """Render overrides as ``key=value`` arguments for ``--parameters``."""
    rendered = []
    for key, value in overrides.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"))
        rendered.append(f"{key}={value}")
    return rendered


def write_parameters_file(path: Path, values: Dict[str, Any], force: bool = False) -> Path:
    """Write an ARM parameters file holding ``values``.

    Raises:
        ParametersFileError: If ``path`` exists and ``force`` is False
    """
    if path.exists() and not force:
        raise ParametersFileError(
            f"Parameters file already exists: {path}",
            path=str(path),
            recovery_suggestion="Pass --force to overwrite it",
        )
    document = {
        "$schema": SCHEMA_URL,
        "contentVersion": "1.0.0.0",
        "parameters": {key: {"value": value} for key, value in values.items()},
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(document, f, indent=2)
        f.write("\n")
    logger.info(f"Wrote parameters file {path}")
    return path
