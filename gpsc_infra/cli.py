"""Command-line entry point for the GPS Reporting infrastructure toolkit."""

from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from . import __version__
from .commands import COMMANDS
from .commands.base import CONTEXT_SETTINGS
from .config_manager import LoggingConfig, setup_logging

load_dotenv()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, prog_name="gpsc-infra")
@click.option(
    "--log-level",
    default=None,
    help="Logging level (DEBUG, INFO, WARNING, ERROR)",
)
@click.option("--log-json", is_flag=True, help="Emit structured logs as JSON")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="GPSC_CONFIG_PATH",
    help="YAML configuration file",
)
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: Optional[str],
    log_json: bool,
    config_path: Optional[Path],
) -> None:
    """Deploy, validate, verify and clean the GPS Reporting Azure infrastructure."""
    ctx.ensure_object(dict)
    settings = {}
    if log_level:
        settings["level"] = log_level
    if log_json:
        settings["json_output"] = True
    try:
        setup_logging(LoggingConfig(**settings))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level / GPSC_LOG_LEVEL") from e
    ctx.obj["config_path"] = config_path


for command in COMMANDS:
    cli.add_command(command)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
