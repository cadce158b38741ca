"""
Domain exceptions for the DPS log store.

Purpose
-------
Define the structured exception hierarchy raised by the log services. The
HTTP layer maps `kind` to a status code; it never inspects message strings.

Design Notes
------------
- All domain exceptions inherit from `DpsLogsDomainException`.
- Each exception carries:
  - `message`: human-readable description safe to show the caller
  - `details`: additional structured context (dict-like)
  - `kind`: `ErrorKind` value identifying the failure class
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- Infrastructure failures (`SearchFailedError`, `StoreFailedError`) carry a
  generic message only; the underlying cause is logged where it is caught
  and chained via `raise ... from exc`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # Caller mistakes (validation, not found)
    WARNING = "warning"
    ERROR = "error"  # Infrastructure failures
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Failure classes surfaced to callers."""

    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"
    SEARCH_FAILED = "search_failed"
    STORE_FAILED = "store_failed"
    INVALID_INPUT = "invalid_input"


class DpsLogsDomainException(Exception):
    """
    Base exception for all log store errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error (dict-like)
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    KIND: ErrorKind = ErrorKind.STORE_FAILED
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.kind: ErrorKind = self.KIND
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"kind={self.kind.value!r}, "
            f"severity={self.severity.value!r}"
            ")"
        )


class ValidationFailedError(DpsLogsDomainException):
    """
    Raised when a submitted log breaks a structural or domain rule.

    `violations` is the flattened list of field-scoped constraint failures
    when detail may be shown (development), otherwise empty.
    """

    KIND = ErrorKind.VALIDATION_FAILED
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(
        self,
        message: str,
        violations: Optional[List[Dict[str, Any]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.violations: List[Dict[str, Any]] = list(violations or [])
        merged = dict(details or {})
        if self.violations:
            merged["violations"] = self.violations
        super().__init__(message, details=merged, error_code="VALIDATION_FAILED")


class NotFoundError(DpsLogsDomainException):
    """
    Raised when a requested log or user does not exist.

    Args:
        resource_type: Type of resource (e.g., "Log", "User")
        identifier: Optional identifier for the missing resource
    """

    KIND = ErrorKind.NOT_FOUND
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class InvalidInputError(DpsLogsDomainException):
    """
    Raised when filter or paging values are malformed.

    Args:
        field: Name of the offending field
        message: Explanation of why the value is invalid
    """

    KIND = ErrorKind.INVALID_INPUT
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field, "reason": message},
            error_code=f"INVALID_{field.upper()}",
        )


class SearchFailedError(DpsLogsDomainException):
    """Raised when a filtered search fails for infrastructure reasons."""

    KIND = ErrorKind.SEARCH_FAILED
    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, message: str = "Error getting filtered logs") -> None:
        super().__init__(message, error_code="SEARCH_FAILED")


class StoreFailedError(DpsLogsDomainException):
    """Raised when a persistence or cache operation fails for infrastructure reasons."""

    KIND = ErrorKind.STORE_FAILED
    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="STORE_FAILED")


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """True if the exception is a domain error marked retryable."""
    if isinstance(exc, DpsLogsDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity for logging; unknown exceptions are ERROR."""
    if isinstance(exc, DpsLogsDomainException):
        return exc.severity
    return ErrorSeverity.ERROR
