"""
multicache - Core Error Types

Defines the exception hierarchy for the cache manager and its caches.
All exceptions inherit from MultiCacheError for consistent error handling.

Propagation policy:
- Configuration and existence errors are raised synchronously to the caller
- Disposer failures and reclamation races are never raised (logged only)
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """
    Standard error codes attached to every MultiCacheError.

    Used for structured error reporting (see MultiCacheError.to_dict).
    """

    # Input validation errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"

    # Registry errors
    CACHE_EXISTS = "CACHE_EXISTS"
    CACHE_NOT_FOUND = "CACHE_NOT_FOUND"

    # Cache errors
    CACHE_FAILURE = "CACHE_FAILURE"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MultiCacheError(Exception):
    """Base exception for all multicache errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for structured logging."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(MultiCacheError):
    """Raised when manager or environment configuration is invalid."""

    error_code = ErrorCode.INVALID_CONFIGURATION


class ValidationError(MultiCacheError):
    """Raised when an argument is invalid (bad TTL, None value, etc.)."""

    error_code = ErrorCode.INVALID_ARGUMENT


class CacheError(MultiCacheError):
    """Base exception for cache-related errors."""

    error_code = ErrorCode.CACHE_FAILURE


class CacheExistsError(CacheError):
    """Raised when a cache is created in strict mode but the name is taken."""

    error_code = ErrorCode.CACHE_EXISTS

    def __init__(self, name: str):
        super().__init__(f"Cache already exists: {name}", {"cache_name": name})
        self.name = name


class NotFoundError(MultiCacheError):
    """Raised when a requested resource is not found."""

    error_code = ErrorCode.CACHE_NOT_FOUND

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} not found: {identifier}"
        super().__init__(message, {"resource": resource, "id": identifier})


class UnknownCacheError(NotFoundError):
    """Raised when looking up a cache name that is not registered."""

    def __init__(self, name: str):
        super().__init__("Cache", name)
        self.name = name


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract the appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        The error's own code for MultiCacheError, INTERNAL_ERROR otherwise
    """
    if isinstance(error, MultiCacheError):
        return error.error_code
    return ErrorCode.INTERNAL_ERROR
