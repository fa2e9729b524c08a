"""Shared option sets, context construction and error handling for commands."""

import functools
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
import structlog

from ..azure_cli import AzureCli
from ..config import InfraConfig, load_config
from ..console import print_error
from ..deployment.context import DeployContext
from ..deployment_registry import DeploymentRegistry
from ..environments import Environment, parse_environment
from ..exceptions import GpscInfraError, InvalidEnvironmentError

logger = structlog.get_logger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def environment_option(f: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "-e",
        "--environment",
        "environment",
        default=None,
        metavar="[dev|uat|prod]",
        help="Target environment (required)",
    )(f)


def target_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that talks to a resource group."""
    decorators = [
        environment_option,
        click.option(
            "-g",
            "--resource-group",
            default=None,
            help="Resource group (default: <base-name>-<env>)",
        ),
        click.option(
            "-s",
            "--subscription",
            default=None,
            help="Subscription id (default: configured or current CLI subscription)",
        ),
        click.option(
            "-l", "--location", default=None, help="Azure region (default: East US)"
        ),
        click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompts"),
        click.option(
            "-d",
            "--dry-run",
            is_flag=True,
            help="Validate and list only; make no changes",
        ),
        click.option(
            "--iac-root",
            type=click.Path(file_okay=False, path_type=Path),
            default=None,
            help="Directory containing modules/ and deployments/",
        ),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f


def require_environment(value: Optional[str]) -> Environment:
    """Parse ``-e``; print usage and exit 1 when it is missing or invalid."""
    try:
        return parse_environment(value)
    except InvalidEnvironmentError as e:
        ctx = click.get_current_context()
        click.echo(ctx.get_usage(), err=True)
        if value is None:
            click.echo("Error: Environment is required (-e dev|uat|prod)", err=True)
        else:
            click.echo(f"Error: {e.message}", err=True)
        raise SystemExit(1) from e


def load_settings(
    iac_root: Optional[Path] = None, subscription: Optional[str] = None
) -> InfraConfig:
    obj: Dict[str, Any] = click.get_current_context().find_root().obj or {}
    return load_config(
        obj.get("config_path"),
        overrides={"iac_root": iac_root, "subscription_id": subscription},
    )


def build_context(
    environment: Optional[str],
    resource_group: Optional[str] = None,
    subscription: Optional[str] = None,
    location: Optional[str] = None,
    yes: bool = False,
    dry_run: bool = False,
    iac_root: Optional[Path] = None,
    **extra: Any,
) -> DeployContext:
    """Resolve flags and configuration into a DeployContext.

    The environment is validated before configuration is read or any
    provider call is made.
    """
    env = require_environment(environment)
    config = load_settings(iac_root, subscription)
    return DeployContext(
        config=config,
        environment=env,
        resource_group=resource_group or config.resource_group(env),
        location=location or config.location(env),
        cli=AzureCli(dry_run=dry_run),
        subscription_id=config.subscription_id,
        assume_yes=yes,
        registry=None if dry_run else DeploymentRegistry(config.registry_dir),
        **extra,
    )


def handle_errors(f: Callable[..., Any]) -> Callable[..., Any]:
    """Print GpscInfraError failures and exit 1."""

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return f(*args, **kwargs)
        except GpscInfraError as e:
            logger.debug("Command failed", **e.to_dict())
            print_error(str(e))
            raise SystemExit(1) from e

    return wrapper
