"""Click commands exposed by the ``gpsc-infra`` CLI."""

from .clean import clean_command
from .database_secrets import add_database_secrets_command
from .deploy import deploy_command
from .deploy_all import deploy_all_command
from .history import history_command
from .iam import (
    assign_keyvault_permissions_command,
    role_assignment_name_command,
    whoami_command,
)
from .setup import setup_command
from .validate import validate_all_command
from .verify import verify_command

COMMANDS = [
    setup_command,
    validate_all_command,
    deploy_command,
    deploy_all_command,
    clean_command,
    add_database_secrets_command,
    assign_keyvault_permissions_command,
    verify_command,
    history_command,
    whoami_command,
    role_assignment_name_command,
]

__all__ = [
    "COMMANDS",
    "add_database_secrets_command",
    "assign_keyvault_permissions_command",
    "clean_command",
    "deploy_all_command",
    "deploy_command",
    "history_command",
    "role_assignment_name_command",
    "setup_command",
    "validate_all_command",
    "verify_command",
    "whoami_command",
]
