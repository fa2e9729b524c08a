"""
Custom Exception Hierarchy for GPS Reporting infrastructure tooling

Every failure the toolkit raises derives from GpscInfraError so that the CLI
can print a single structured message and exit non-zero. Errors carry an
error code, context and an optional recovery suggestion.
"""

from typing import Any, Dict, List, Optional, Union


class GpscInfraError(Exception):
    """
    Root of the toolkit's errors.

    Args:
        message: What went wrong, for the operator
        error_code: Stable upper-case code, printed in brackets
        context: Resource names and flags involved in the failure
        cause: Exception this error wraps
        recovery_suggestion: Next step the operator can take
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}" if self.error_code else self.message]
        if self.context:
            pairs = ", ".join(f"{key}={value}" for key, value in self.context.items())
            parts.append(f"(context: {pairs})")
        if self.cause:
            parts.append(f"(caused by: {self.cause})")
        if self.recovery_suggestion:
            parts.append(f"(suggestion: {self.recovery_suggestion})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form passed to the logger."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": None if self.cause is None else str(self.cause),
            "recovery_suggestion": self.recovery_suggestion,
        }


# Configuration and input validation
class ConfigurationError(GpscInfraError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(
        self, message: str, config_path: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if config_path:
            context["config_path"] = config_path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        super().__init__(message, **kwargs)


class InvalidEnvironmentError(GpscInfraError):
    """Raised when an environment name is not one of the supported values."""

    def __init__(self, value: Optional[str], allowed: List[str], **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "INVALID_ENVIRONMENT")
        kwargs.setdefault(
            "recovery_suggestion", f"Use one of: {', '.join(allowed)}"
        )
        super().__init__(
            f"Invalid environment '{value}'. Must be one of: {', '.join(allowed)}",
            **kwargs,
        )
        self.value = value


class PasswordPolicyError(GpscInfraError):
    """Raised when a password does not satisfy the complexity policy."""

    def __init__(self, message: str, problems: Optional[List[str]] = None, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "PASSWORD_POLICY")
        super().__init__(message, **kwargs)
        self.problems = problems or []


class ParametersFileError(GpscInfraError):
    """Raised when a parameters file is missing or malformed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if path:
            context["path"] = path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PARAMETERS_FILE")
        super().__init__(message, **kwargs)


# Azure-related exceptions
class AzureError(GpscInfraError):
    """Base class for Azure-related errors."""

    pass


class AzureCliNotFoundError(AzureError):
    """Raised when the az executable is not installed."""

    def __init__(self, executable: str = "az", **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "AZURE_CLI_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Install the Azure CLI: https://docs.microsoft.com/cli/azure/install-azure-cli",
        )
        super().__init__(f"Azure CLI executable '{executable}' not found", **kwargs)


class AzureAuthenticationError(AzureError):
    """Raised when the Azure CLI is not logged in."""

    def __init__(
        self, message: str, tenant_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_AUTH_FAILED")
        kwargs.setdefault("recovery_suggestion", "Run 'az login' first")
        super().__init__(message, **kwargs)


class AzureSubscriptionError(AzureError):
    """Raised when the subscription cannot be selected."""

    def __init__(
        self, message: str, subscription_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context") or {}
        if subscription_id:
            context["subscription_id"] = subscription_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "AZURE_SUBSCRIPTION_ERROR")
        kwargs.setdefault(
            "recovery_suggestion", "Check the subscription id with 'az account list'"
        )
        super().__init__(message, **kwargs)


class ResourceGroupNotFoundError(AzureError):
    """Raised when the target resource group does not exist."""

    def __init__(self, resource_group: str, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        context["resource_group"] = resource_group
        kwargs["context"] = context
        kwargs.setdefault("error_code", "RESOURCE_GROUP_NOT_FOUND")
        kwargs.setdefault(
            "recovery_suggestion",
            "Deploy the VNet module first or create the resource group",
        )
        super().__init__(f"Resource group '{resource_group}' does not exist", **kwargs)
        self.resource_group = resource_group


class ProviderCommandError(AzureError):
    """Raised when an az command exits non-zero."""

    def __init__(
        self,
        message: str,
        command: Optional[Union[str, List[str]]] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if command:
            context["command"] = (
                " ".join(command) if isinstance(command, list) else command
            )
        if returncode is not None:
            context["returncode"] = returncode
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PROVIDER_COMMAND_FAILED")
        super().__init__(message, **kwargs)
        self.returncode = returncode
        self.stderr = stderr or ""


class ProviderTimeoutError(ProviderCommandError):
    """Raised when an az command exceeds its timeout."""

    def __init__(self, message: str, timeout_value: Optional[int] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if timeout_value:
            context["timeout"] = f"{timeout_value}s"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PROVIDER_TIMEOUT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Increase the matching GPSC_TIMEOUT_* environment variable",
        )
        super().__init__(message, **kwargs)


class DryRunViolationError(GpscInfraError):
    """Raised when a mutating command is attempted during a dry run."""

    def __init__(self, command: List[str], **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "DRY_RUN_VIOLATION")
        super().__init__(
            f"Refusing to run mutating command in dry-run mode: az {' '.join(command)}",
            **kwargs,
        )
        self.command = command


# Deployment workflow exceptions
class PreconditionError(GpscInfraError):
    """Raised when a required resource or state is missing before deployment."""

    def __init__(self, message: str, resource: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if resource:
            context["resource"] = resource
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PRECONDITION_FAILED")
        super().__init__(message, **kwargs)


class DeploymentError(GpscInfraError):
    """Raised when template validation or deployment fails."""

    def __init__(
        self,
        message: str,
        module: Optional[str] = None,
        deployment_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if module:
            context["module"] = module
        if deployment_name:
            context["deployment_name"] = deployment_name
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEPLOYMENT_FAILED")
        super().__init__(message, **kwargs)


class RoleAssignmentError(GpscInfraError):
    """Raised when no role assignment method succeeds."""

    def __init__(self, message: str, scope: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if scope:
            context["scope"] = scope
        kwargs["context"] = context
        kwargs.setdefault("error_code", "ROLE_ASSIGNMENT_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Ask a subscription Owner or User Access Administrator to grant the role",
        )
        super().__init__(message, **kwargs)


def wrap_cli_failure(
    command: List[str],
    returncode: int,
    stderr: str,
    context: Optional[Dict[str, Any]] = None,
) -> AzureError:
    """
    Wrap a failed az invocation in our custom exception hierarchy.

    Args:
        command: The az arguments that failed (without the executable)
        returncode: Process exit code
        stderr: Captured standard error
        context: Optional context information

    Returns:
        AzureError: Most specific error matching the diagnostic text
    """
    text = stderr.strip()
    lowered = text.lower()

    if "az login" in lowered or "please run 'az login'" in lowered:
        return AzureAuthenticationError(
            f"Azure CLI is not authenticated: {text}", context=context
        )
    if "resourcegroupnotfound" in lowered:
        group = None
        if "--resource-group" in command:
            index = command.index("--resource-group")
            if index + 1 < len(command):
                group = command[index + 1]
        return ResourceGroupNotFoundError(group or "unknown", context=context)
    if "subscription" in lowered and "not found" in lowered:
        return AzureSubscriptionError(
            f"Azure subscription error: {text}", context=context
        )
    return ProviderCommandError(
        f"az {' '.join(command[:3])} failed: {text or 'no diagnostic output'}",
        command=["az", *command],
        returncode=returncode,
        stderr=text,
        context=context,
    )
