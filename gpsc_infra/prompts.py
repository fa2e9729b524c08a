"""
Interactive confirmations for deployments and deletions.

Destructive operations use typed confirmations: the operator must type an
exact, case-sensitive phrase, followed by a final ``yes`` where the data loss
is permanent.
"""

from dataclasses import dataclass, field
from typing import List

import click


def confirm(question: str, assume_yes: bool = False) -> bool:
    """Ask a y/N question; ``assume_yes`` answers it without prompting."""
    if assume_yes:
        return True
    return click.confirm(question, default=False)


def confirm_typed(phrase: str, message: str) -> bool:
    """Return True only when the operator types ``phrase`` exactly."""
    click.echo(message)
    answer = click.prompt(
        f"Type '{phrase}' to confirm", default="", show_default=False
    )
    return answer.strip() == phrase


@dataclass
class DeletionConfirmation:
    """
    Multi-stage confirmation for a cleanup operation.

    Stages:
    1. Typed phrase (when ``phrase`` is set), otherwise a y/N question
    2. Final typed ``yes`` (when ``final_yes`` is set)

    Dry runs and ``--yes`` skip every stage.
    """

    question: str
    phrase: str = ""
    final_yes: bool = False
    warnings: List[str] = field(default_factory=list)

    def ask(self, assume_yes: bool = False, dry_run: bool = False) -> bool:
        if assume_yes or dry_run:
            return True

        for warning in self.warnings:
            click.echo(warning)

        if self.phrase:
            if not confirm_typed(self.phrase, self.question):
                return False
        elif not click.confirm(self.question, default=False):
            return False

        if self.final_yes:
            answer = click.prompt(
                "Final confirmation - are you absolutely sure? (yes/NO)",
                default="NO",
                show_default=False,
            )
            return answer.strip() == "yes"
        return True
