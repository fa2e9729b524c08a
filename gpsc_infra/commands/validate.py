"""CLI command for validating the IaC tree."""

from pathlib import Path
from typing import Optional, Tuple

import click

from ..azure_cli import AzureCli
from ..console import print_error, print_header, print_success, print_table
from ..environments import Environment
from ..validation import validate_all
from .base import CONTEXT_SETTINGS, handle_errors, load_settings, require_environment


@click.command(name="validate-all", context_settings=CONTEXT_SETTINGS)
@click.option(
    "--iac-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory containing modules/ and deployments/",
)
@click.option(
    "-e",
    "--environment",
    "environments",
    multiple=True,
    metavar="[dev|uat|prod]",
    help="Environments whose parameter files to check (default: all)",
)
@handle_errors
def validate_all_command(iac_root: Optional[Path], environments: Tuple[str, ...]) -> None:
    """Check tooling, template syntax, module layout and parameter files."""
    selected = (
        [require_environment(value) for value in environments]
        if environments
        else list(Environment)
    )
    config = load_settings(iac_root)
    print_header(f"Validating {config.iac_root}")

    report = validate_all(AzureCli(dry_run=True), config.iac_root, selected)
    print_table(
        "Validation results",
        ["Category", "Check", "Result", "Detail"],
        [(r.category, r.name, "PASS" if r.passed else "FAIL", r.detail) for r in report.results],
    )
    if not report.ok:
        print_error(f"{len(report.failures)} check(s) failed")
        raise SystemExit(1)
    print_success("All checks passed")
