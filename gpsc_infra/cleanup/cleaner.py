"""Best-effort deletion of resources inside a resource group.

Targets are deleted strictly in plan order. A failed delete is reported as a
warning and the remaining targets are still attempted; nothing is rolled
back.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

import structlog

from ..azure_cli import AzureCli
from ..console import (
    print_info,
    print_status,
    print_success,
    print_table,
    print_warning,
)
from ..prompts import DeletionConfirmation
from ..timeout_config import Timeouts

logger = structlog.get_logger(__name__)


@dataclass
class CleanupTarget:
    """One delete call and how to describe it."""

    label: str
    delete_args: List[str]
    resource_type: str = ""


@dataclass
class CleanupPlan:
    """Ordered targets plus the confirmation required to run them."""

    title: str
    resource_group: str
    targets: List[CleanupTarget]
    confirmation: DeletionConfirmation
    deletes_resource_group: bool = False


@dataclass
class CleanupReport:
    """Result of a cleanup run."""

    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled


def short_type(resource_type: str) -> str:
    return resource_type.rsplit("/", 1)[-1]


def resource_name(resource_id: str) -> str:
    return resource_id.rstrip("/").rsplit("/", 1)[-1]


class ResourceCleaner:
    """Lists and deletes resources in one resource group."""

    def __init__(self, cli: AzureCli, resource_group: str):
        self.cli = cli
        self.resource_group = resource_group

    def list_ids_by_type(self, resource_type: str) -> List[str]:
        ids = self.cli.query_text(
            [
                "resource",
                "list",
                "--resource-group",
                self.resource_group,
                "--resource-type",
                resource_type,
                "--query",
                "[].id",
                "-o",
                "tsv",
            ]
        )
        return ids.split() if ids else []

    def list_resources(self) -> List[Dict[str, Any]]:
        resources = self.cli.query_json(
            [
                "resource",
                "list",
                "--resource-group",
                self.resource_group,
                "--query",
                "[].{id:id, name:name, type:type}",
                "-o",
                "json",
            ]
        )
        return resources if isinstance(resources, list) else []

    def targets_for_types(self, resource_types: List[str]) -> List[CleanupTarget]:
        """Generic ``az resource delete --ids`` targets, grouped by type order."""
        targets = []
        for resource_type in resource_types:
            for resource_id in self.list_ids_by_type(resource_type):
                targets.append(self.generic_target(resource_id, resource_type))
        return targets

    @staticmethod
    def generic_target(resource_id: str, resource_type: str) -> CleanupTarget:
        return CleanupTarget(
            label=f"{short_type(resource_type)} {resource_name(resource_id)}",
            delete_args=["resource", "delete", "--ids", resource_id],
            resource_type=resource_type,
        )

    def delete(self, target: CleanupTarget, report: CleanupReport) -> bool:
        print_status(f"Deleting {target.label}")
        result = self.cli.run(target.delete_args, timeout=Timeouts.DELETE)
        if result.ok:
            print_success(f"Deleted {target.label}")
            report.deleted.append(target.label)
            return True
        print_warning(f"Failed to delete {target.label}: {result.stderr.strip()}")
        report.failed.append(target.label)
        report.errors[target.label] = result.stderr.strip()
        return False


def run_cleanup(
    cleaner: ResourceCleaner,
    plan: CleanupPlan,
    assume_yes: bool = False,
) -> CleanupReport:
    """Show the plan, confirm, then delete every target in order."""
    report = CleanupReport()
    if not plan.targets:
        print_info(f"No resources to clean up in {plan.resource_group}")
        return report

    print_table(
        plan.title,
        ["#", "Resource", "Action"],
        [(i, target.label, " ".join(target.delete_args[:2])) for i, target in enumerate(plan.targets, 1)],
    )
    if not plan.deletes_resource_group:
        print_info(f"Resource group '{plan.resource_group}' will be preserved")

    dry_run = cleaner.cli.dry_run
    if dry_run:
        print_info("Dry run: no resources were deleted")
        report.skipped = [target.label for target in plan.targets]
        return report

    if not plan.confirmation.ask(assume_yes=assume_yes, dry_run=dry_run):
        print_warning("Cleanup cancelled by user")
        report.cancelled = True
        report.skipped = [target.label for target in plan.targets]
        return report

    for target in plan.targets:
        cleaner.delete(target, report)

    if report.failed:
        print_warning(
            f"Cleanup finished with {len(report.failed)} failure(s): {', '.join(report.failed)}"
        )
    else:
        print_success(f"Cleanup complete: {len(report.deleted)} resource(s) deleted")
    logger.info(
        f"Cleanup of {plan.resource_group}: deleted={len(report.deleted)} failed={len(report.failed)}"
    )
    return report
