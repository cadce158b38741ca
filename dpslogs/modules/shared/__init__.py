"""
Shared module foundations.

Provides the domain exception hierarchy and the base service and repository
patterns used by the log and user modules.

Usage
-----
    from dpslogs.modules.shared import (
        BaseRepository,
        BaseService,
        NotFoundError,
        ValidationFailedError,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    DpsLogsDomainException,
    ErrorKind,
    ErrorSeverity,
    InvalidInputError,
    NotFoundError,
    SearchFailedError,
    StoreFailedError,
    ValidationFailedError,
    get_error_severity,
    is_transient_error,
)

__all__ = [
    # Base patterns
    "BaseService",
    "BaseRepository",
    # Exceptions
    "DpsLogsDomainException",
    "ErrorKind",
    "ErrorSeverity",
    "ValidationFailedError",
    "NotFoundError",
    "InvalidInputError",
    "SearchFailedError",
    "StoreFailedError",
    "is_transient_error",
    "get_error_severity",
]
