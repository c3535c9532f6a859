"""
Custom exception classes for the change monitor service.

Provides specific exception types for the different failure domains (input
validation, watch lifecycle, persistence, notification, authentication) so
callers can map them to responses without inspecting messages.
"""

from typing import Any


class BaseError(Exception):
    """
    Base exception class for all change monitor errors.

    All custom exceptions in the system inherit from this base class to
    enable consistent error handling and logging.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Human-readable error description
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context information
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation including error code if present."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"context={self.context})"
        )


class ConfigurationError(BaseError):
    """Raised when there are configuration or settings issues."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        expected_type: str | None = None,
        actual_value: Any | None = None,
    ):
        context = {}
        if config_key:
            context["config_key"] = config_key
        if expected_type:
            context["expected_type"] = expected_type
        if actual_value is not None:
            context["actual_value"] = str(actual_value)

        super().__init__(message, error_code="CONFIG_ERROR", context=context)


class ValidationError(BaseError):
    """Raised when user-supplied data is missing or malformed."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        fields: list[str] | None = None,
        actual_value: Any | None = None,
        validation_rule: str | None = None,
    ):
        context = {}
        if field_name:
            context["field_name"] = field_name
        if fields:
            context["fields"] = fields
        if actual_value is not None:
            context["actual_value"] = str(actual_value)
        if validation_rule:
            context["validation_rule"] = validation_rule

        super().__init__(message, error_code="VALIDATION_ERROR", context=context)


class PathNotFoundError(BaseError):
    """Raised when a monitor target's root path does not exist."""

    def __init__(self, message: str, path: str | None = None):
        context = {"path": path} if path else {}
        super().__init__(message, error_code="PATH_NOT_FOUND", context=context)


class TargetNotFoundError(BaseError):
    """Raised when no monitor configuration is stored for the requested owner."""

    def __init__(self, message: str, owner_identity: str | None = None):
        context = {"owner_identity": owner_identity} if owner_identity else {}
        super().__init__(message, error_code="TARGET_NOT_FOUND", context=context)


class NoActiveSessionError(BaseError):
    """Raised when stopping while no watch session is active."""

    def __init__(self, message: str = "No active watch session"):
        super().__init__(message, error_code="NO_ACTIVE_SESSION")


class AdapterError(BaseError):
    """Raised when the filesystem observer cannot be started or stopped."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        operation: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if path:
            context["path"] = path
        if operation:
            context["operation"] = operation

        super().__init__(message, error_code="ADAPTER_ERROR", context=context, cause=underlying_error)


class PersistenceError(BaseError):
    """Raised when a storage operation fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        collection_name: str | None = None,
        underlying_error: Exception | None = None,
    ):
        context = {}
        if operation:
            context["operation"] = operation
        if collection_name:
            context["collection_name"] = collection_name

        super().__init__(message, error_code="PERSISTENCE_ERROR", context=context, cause=underlying_error)


class AlertDispatchError(BaseError):
    """Raised by message dispatchers when an outbound alert cannot be delivered."""

    def __init__(self, message: str, recipient: str | None = None, underlying_error: Exception | None = None):
        context = {"recipient": recipient} if recipient else {}
        super().__init__(message, error_code="ALERT_ERROR", context=context, cause=underlying_error)


class AuthenticationError(BaseError):
    """Raised when credentials or access tokens are rejected."""

    def __init__(self, message: str, reason: str | None = None):
        context = {"reason": reason} if reason else {}
        super().__init__(message, error_code="AUTHENTICATION_ERROR", context=context)


# Convenience functions for common error scenarios
def raise_validation_error(subject: str, pydantic_error: Exception) -> None:
    """Re-raise a pydantic validation failure as a ValidationError naming the offending fields."""
    errors = pydantic_error.errors() if hasattr(pydantic_error, "errors") else []
    fields = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "__root__")
        if location and location not in fields:
            fields.append(location)

    details = "; ".join(error.get("msg", "") for error in errors) or str(pydantic_error)
    raise ValidationError(
        f"Invalid {subject}: {details}",
        fields=fields or None,
        validation_rule=subject,
    ) from pydantic_error
