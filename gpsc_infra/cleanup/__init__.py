"""Resource cleanup plans and execution."""

from .cleaner import CleanupPlan, CleanupReport, CleanupTarget, ResourceCleaner, run_cleanup
from .plans import build_plan, cleanup_modules

__all__ = [
    "CleanupPlan",
    "CleanupReport",
    "CleanupTarget",
    "ResourceCleaner",
    "build_plan",
    "cleanup_modules",
    "run_cleanup",
]
