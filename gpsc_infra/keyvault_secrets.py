"""Key Vault secret provisioning for the SQL database.

Secrets are written with ``az keyvault secret set``, which adds a new
version rather than failing when the secret already exists, so re-running
provisioning is safe.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from .azure_cli import AzureCli
from .environments import ResourceNames
from .exceptions import PreconditionError
from .timeout_config import Timeouts

logger = structlog.get_logger(__name__)

SQL_ADMIN_USERNAME_SECRET = "sql-admin-username"
SQL_ADMIN_PASSWORD_SECRET = "sql-admin-password"
CONNECTION_STRING_SECRET = "database-connection-string"
MI_CONNECTION_STRING_SECRET = "database-connection-string-mi"
DEFAULT_SQL_ADMIN = "sqladmin"


@dataclass
class SecretSpec:
    """A secret to store in Key Vault."""

    name: str
    value: str
    description: str = ""
    tags: Dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"SecretSpec(name={self.name!r}, value='***')"


def sql_connection_string(server: str, database: str, username: str, password: str) -> str:
    """ADO.NET connection string using SQL authentication."""
    return (
        f"Server=tcp:{server}.database.windows.net,1433;"
        f"Initial Catalog={database};"
        "Persist Security Info=False;"
        f"User ID={username};"
        f"Password={password};"
        "MultipleActiveResultSets=False;"
        "Encrypt=True;"
        "TrustServerCertificate=False;"
        "Connection Timeout=30;"
    )


def managed_identity_connection_string(server: str, database: str) -> str:
    """ADO.NET connection string for App Service managed identity access."""
    return (
        f"Server=tcp:{server}.database.windows.net,1433;"
        f"Initial Catalog={database};"
        "Persist Security Info=False;"
        "MultipleActiveResultSets=False;"
        "Encrypt=True;"
        "TrustServerCertificate=False;"
        "Connection Timeout=30;"
        "Authentication=Active Directory Managed Identity;"
    )


def key_vault_exists(cli: AzureCli, vault: str, resource_group: str) -> bool:
    return cli.succeeds(["keyvault", "show", "--name", vault, "--resource-group", resource_group])


def get_secret(cli: AzureCli, vault: str, name: str) -> Optional[str]:
    """Current value of a secret, or None when missing or unreadable."""
    return cli.query_text(
        [
            "keyvault",
            "secret",
            "show",
            "--vault-name",
            vault,
            "--name",
            name,
            "--query",
            "value",
            "-o",
            "tsv",
        ],
        timeout=Timeouts.SECRET,
    )


def set_secret(cli: AzureCli, vault: str, secret: SecretSpec) -> None:
    """Store ``secret`` in ``vault``; raises a wrapped AzureError on failure."""
    args = [
        "keyvault",
        "secret",
        "set",
        "--vault-name",
        vault,
        "--name",
        secret.name,
        "--value",
        secret.value,
        "--output",
        "none",
    ]
    if secret.description:
        args.extend(["--description", secret.description])
    if secret.tags:
        args.extend(["--tags", *(f"{k}={v}" for k, v in secret.tags.items())])
    cli.run(args, timeout=Timeouts.SECRET, check=True)
    logger.info(f"Stored secret {secret.name} in {vault}")


def database_secrets(
    names: ResourceNames, username: str, password: str
) -> List[SecretSpec]:
    """The four secrets the backend needs to reach the database."""
    environment = names.environment.value
    server = names.sql_server
    database = names.sql_database
    return [
        SecretSpec(
            SQL_ADMIN_USERNAME_SECRET,
            username,
            "SQL Server administrator username",
            {"environment": environment, "purpose": "sql-admin"},
        ),
        SecretSpec(
            SQL_ADMIN_PASSWORD_SECRET,
            password,
            "SQL Server administrator password",
            {"environment": environment, "purpose": "sql-admin"},
        ),
        SecretSpec(
            CONNECTION_STRING_SECRET,
            sql_connection_string(server, database, username, password),
            "Database connection string (SQL authentication)",
            {"environment": environment, "purpose": "database-connection"},
        ),
        SecretSpec(
            MI_CONNECTION_STRING_SECRET,
            managed_identity_connection_string(server, database),
            "Database connection string (managed identity)",
            {"environment": environment, "purpose": "database-connection-mi"},
        ),
    ]


def provision_database_secrets(
    cli: AzureCli,
    names: ResourceNames,
    resource_group: str,
    username: str,
    password: str,
) -> List[str]:
    """Write the database secrets into the environment's Key Vault.

    Returns:
        Names of the secrets written

    Raises:
        PreconditionError: If the Key Vault does not exist
    """
    vault = names.key_vault
    if not key_vault_exists(cli, vault, resource_group):
        raise PreconditionError(
            f"Key Vault '{vault}' not found in resource group '{resource_group}'",
            resource=vault,
            recovery_suggestion="Deploy the key-vault module first",
        )

    written = []
    for secret in database_secrets(names, username, password):
        set_secret(cli, vault, secret)
        written.append(secret.name)
    return written
