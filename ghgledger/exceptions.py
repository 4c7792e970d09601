# -*- coding: utf-8 -*-
"""GHG Ledger Exception Hierarchy.

Exceptions raised by the emission calculation core. Each carries rich
context so the calling HTTP or CLI layer can render a useful message
without inspecting internals.

Exception Hierarchy:
    LedgerException (base)
    ├── MissingFactorError
    ├── ValidationError
    └── StorageError

All exceptions include:
- error_code: Unique error identifier
- component: Name of the ledger component that raised the error
- context: Dictionary with error-specific details
- timestamp: When the error occurred
- traceback: Stack at the raise site for debugging

Example:
    >>> from ghgledger.exceptions import MissingFactorError
    >>> raise MissingFactorError(
    ...     activity_name="Diesel",
    ...     activity_date="2023-06-01",
    ... )

Author: GHG Ledger Team
Status: Production Ready
"""

import json
import re
import traceback as tb
from datetime import date, datetime
from typing import Any, Dict, Optional, Union


# ==============================================================================
# Base Exception
# ==============================================================================

class LedgerException(Exception):
    """Base exception for all GHG ledger errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "GHG_STORAGE_ERROR")
        component: Name of the component that raised the error (optional)
        context: Dictionary with error-specific details
        timestamp: When the error occurred
        traceback_str: Stack at the raise site
    """

    ERROR_PREFIX = "GHG"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize ledger exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            component: Name of component that raised the error
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = "".join(tb.format_stack()[:-1])

    def _generate_error_code(self) -> str:
        """Generate error code from the exception class name.

        Returns:
            Error code like "GHG_MISSING_FACTOR_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary with all error details
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "traceback": self.traceback_str,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string.

        Returns:
            JSON string representation
        """
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        """String representation with error code and message."""
        parts = [f"[{self.error_code}]"]
        if self.component:
            parts.append(f"Component: {self.component}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"component='{self.component}')"
        )


# ==============================================================================
# Business Exceptions
# ==============================================================================

class MissingFactorError(LedgerException):
    """No emission factor version applies to an activity on a date.

    User-correctable: add a factor covering the date. No default factor is
    ever substituted.

    Example:
        >>> raise MissingFactorError(activity_name="Diesel", activity_date="2023-06-01")
    """

    def __init__(
        self,
        activity_name: str,
        activity_date: Union[date, str, None] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize missing factor error.

        Args:
            activity_name: Activity that could not be resolved
            activity_date: Activity date used for resolution
            message: Optional override of the default message
            context: Error context
        """
        context = context or {}
        context["activity_name"] = activity_name
        if activity_date is not None:
            context["activity_date"] = str(activity_date)
        self.activity_name = activity_name
        self.activity_date = activity_date
        super().__init__(
            message or f'No emission factor found for "{activity_name}".',
            component="FactorResolver",
            context=context,
        )


class ValidationError(LedgerException):
    """Input validation failed.

    Raised for malformed submissions and reported per element by bulk
    factor inserts.

    Example:
        >>> raise ValidationError(
        ...     message="Missing required field: valid_from",
        ...     component="FactorStore",
        ...     invalid_fields={"valid_from": "Field required"},
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize validation error.

        Args:
            message: Error message
            component: Name of component
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
        """
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        self.invalid_fields = invalid_fields or {}
        super().__init__(message, component=component, context=context)


class StorageError(LedgerException):
    """Underlying store failure.

    Never retried by the ledger; callers decide whether to retry.

    Example:
        >>> raise StorageError(
        ...     message="Query execution failed: database is locked",
        ...     operation="submit",
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        """Initialize storage error.

        Args:
            message: Error message
            component: Name of component
            context: Error context
            operation: Store operation that failed
            cause: Original exception that caused this error
        """
        context = context or {}
        if operation:
            context["operation"] = operation
        if cause:
            context["cause"] = str(cause)
            context["cause_type"] = type(cause).__name__
        super().__init__(message, component=component or "LedgerDatabase", context=context)


# ==============================================================================
# Exception Utilities
# ==============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current = exc

    while current is not None:
        if isinstance(current, LedgerException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")

        current = getattr(current, "__cause__", None)

    return "\n".join(lines)


def is_retriable(exc: Exception) -> bool:
    """Check whether a caller may reasonably retry the failed operation.

    Only storage failures qualify; missing factors and validation errors
    need a data fix first.

    Args:
        exc: Exception to check

    Returns:
        True if operation may be retried by the caller
    """
    if isinstance(exc, (MissingFactorError, ValidationError)):
        return False
    return isinstance(exc, StorageError)


__all__ = [
    "LedgerException",
    "MissingFactorError",
    "ValidationError",
    "StorageError",
    "format_exception_chain",
    "is_retriable",
]
