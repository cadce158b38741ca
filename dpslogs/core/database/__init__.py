"""
Database subsystem.

Provides the async SQLAlchemy engine and session management, plus the ORM
base class and mixins for model definitions.
"""

from dpslogs.core.database.base import Base, TimestampMixin, utc_now
from dpslogs.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "TimestampMixin",
    "utc_now",
    # Main service
    "DatabaseService",
    # Exceptions
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
