"""SQL administrator password policy, generation and interactive entry.

One policy applies everywhere a password is accepted: 8-128 characters with
at least one uppercase letter, lowercase letter, digit and special character.
"""

import secrets
import string
from dataclasses import dataclass
from typing import List

import click
import structlog

from .console import print_warning
from .exceptions import PasswordPolicyError

logger = structlog.get_logger(__name__)

SPECIAL_CHARACTERS = "!@#$%^&*()-_=+[]{}:,.?"

# Only used for template validation; never deployed.
DRY_RUN_PLACEHOLDER_PASSWORD = "DryRunPassword123!"


@dataclass(frozen=True)
class PasswordPolicy:
    """Complexity rules for SQL administrator passwords."""

    min_length: int = 8
    max_length: int = 128

    def problems(self, password: str) -> List[str]:
        """Return every rule ``password`` breaks; empty when it complies."""
        found: List[str] = []
        if len(password) < self.min_length:
            found.append(f"must be at least {self.min_length} characters")
        if len(password) > self.max_length:
            found.append(f"must be at most {self.max_length} characters")
        if not any(c.isupper() for c in password):
            found.append("must contain an uppercase letter")
        if not any(c.islower() for c in password):
            found.append("must contain a lowercase letter")
        if not any(c.isdigit() for c in password):
            found.append("must contain a digit")
        if all(c.isalnum() for c in password):
            found.append("must contain a special character")
        return found

    def validate(self, password: str) -> None:
        found = self.problems(password)
        if found:
            raise PasswordPolicyError(
                f"Password {'; '.join(found)}",
                problems=found,
                recovery_suggestion="Use upper and lower case letters, digits and symbols",
            )


DEFAULT_POLICY = PasswordPolicy()


def generate_password(length: int = 20) -> str:
    """Generate a random password that satisfies DEFAULT_POLICY."""
    if length < DEFAULT_POLICY.min_length:
        raise ValueError(f"length must be at least {DEFAULT_POLICY.min_length}")
    pools = [
        string.ascii_uppercase,
        string.ascii_lowercase,
        string.digits,
        SPECIAL_CHARACTERS,
    ]
    alphabet = "".join(pools)
    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def prompt_new_password(
    label: str = "SQL admin password", policy: PasswordPolicy = DEFAULT_POLICY
) -> str:
    """Prompt until a password and its confirmation match and satisfy ``policy``.

    There is no attempt limit; Ctrl+C aborts through click.
    """
    while True:
        password = click.prompt(label, hide_input=True)
        confirmation = click.prompt("Confirm password", hide_input=True)
        if password != confirmation:
            print_warning("Passwords do not match. Please try again.")
            continue
        found = policy.problems(password)
        if found:
            print_warning(
                f"Password does not meet complexity requirements: {'; '.join(found)}"
            )
            continue
        logger.debug("Password accepted")
        return password
