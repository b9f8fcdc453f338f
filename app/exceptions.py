"""
Custom Exception Classes for the CMS plugin runtime

This module defines custom exceptions for better error handling and
consistent error responses across the application.

Inside the plugin runtime these are raised at the point of failure and
caught at the PluginManager boundary, where they become boolean results or
an ERROR status. Only the HTTP layer lets them reach the exception handlers.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes (used by the admin UI for i18n)."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_DUPLICATE_RESOURCE = "VALIDATION_DUPLICATE_RESOURCE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    PLUGIN_ERROR = "PLUGIN_ERROR"
    PLUGIN_NOT_FOUND = "PLUGIN_NOT_FOUND"
    PLUGIN_ALREADY_INSTALLED = "PLUGIN_ALREADY_INSTALLED"
    PLUGIN_LOAD_FAILED = "PLUGIN_LOAD_FAILED"
    PLUGIN_DEPENDENCY_UNMET = "PLUGIN_DEPENDENCY_UNMET"
    PLUGIN_ID_MISMATCH = "PLUGIN_ID_MISMATCH"
    PLUGIN_OPERATION_FAILED = "PLUGIN_OPERATION_FAILED"
    PLUGIN_STORE_FAILED = "PLUGIN_STORE_FAILED"


class CMSError(Exception):
    """Base exception class for all CMS-related exceptions"""

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(CMSError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class DuplicateResourceError(CMSError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.VALIDATION_DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


# ============================================================================
# Plugin Runtime Exceptions
# ============================================================================


class PluginError(CMSError):
    """Base class for plugin runtime failures"""

    error_code = ErrorCode.PLUGIN_ERROR

    def __init__(
        self,
        message: str,
        plugin_id: str | None = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.plugin_id = plugin_id
        error_details = details or {}
        if plugin_id is not None:
            error_details.setdefault("plugin_id", plugin_id)
        super().__init__(message=message, status_code=status_code, details=error_details)


class PluginNotFoundError(ResourceNotFoundError):
    """Raised when a plugin is not tracked by the manager"""

    error_code = ErrorCode.PLUGIN_NOT_FOUND

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        super().__init__(resource_type="Plugin", resource_id=plugin_id)


class PluginAlreadyInstalledError(DuplicateResourceError):
    """Raised when installing a plugin id that is already tracked"""

    error_code = ErrorCode.PLUGIN_ALREADY_INSTALLED

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        super().__init__(resource_type="Plugin", field="id", value=plugin_id)


class PluginLoadError(PluginError):
    """Raised when a plugin's code or metadata cannot be resolved"""

    error_code = ErrorCode.PLUGIN_LOAD_FAILED


class PluginDependencyError(PluginError):
    """Raised when a dependency is not active, or dependents are still loaded"""

    error_code = ErrorCode.PLUGIN_DEPENDENCY_UNMET

    def __init__(self, message: str, plugin_id: str, dependencies: list[str]):
        self.dependencies = list(dependencies)
        super().__init__(
            message=message,
            plugin_id=plugin_id,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"dependencies": self.dependencies},
        )


class PluginIdMismatchError(PluginError):
    """Raised when a plugin registers metadata under another plugin's identity"""

    error_code = ErrorCode.PLUGIN_ID_MISMATCH

    def __init__(self, claimed_id: str, plugin_id: str):
        self.claimed_id = claimed_id
        super().__init__(
            message=f"Plugin ID mismatch: {claimed_id} vs {plugin_id}",
            plugin_id=plugin_id,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"claimed_id": claimed_id},
        )


class PluginStoreError(PluginError):
    """Raised when a plugin store cannot read or write its backing database"""

    error_code = ErrorCode.PLUGIN_STORE_FAILED

    def __init__(self, operation: str, plugin_id: str | None = None, error: str | None = None):
        message = f"Plugin store {operation} failed"
        if error:
            message = f"{message}: {error}"
        super().__init__(message=message, plugin_id=plugin_id, details={"operation": operation})


class PluginOperationError(PluginError):
    """Raised by the HTTP layer when a manager operation reports failure"""

    error_code = ErrorCode.PLUGIN_OPERATION_FAILED

    def __init__(self, operation: str, plugin_id: str, error: str | None = None):
        message = f"Failed to {operation} plugin {plugin_id}"
        if error:
            message = f"{message}: {error}"
        super().__init__(
            message=message,
            plugin_id=plugin_id,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"operation": operation, "error": error},
        )

