"""
Base Service Foundation

Purpose
-------
Foundation class for the log store services. Services orchestrate
repositories and the cache client, enforce business rules and raise domain
exceptions.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Best-effort cache population (failures logged, never raised)
- Common error logging pattern for infrastructure failures

What this class does NOT do:
- Manage database transactions (repositories/DatabaseService do that)
- Serialize cached values (services choose their own representation)

Usage
-----
    class LogRecordCache(BaseService):
        def __init__(self, repository, cache, logger):
            super().__init__(logger)
            self.repository = repository
            self.cache = cache
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from logging import Logger

    from dpslogs.core.redis.service import CacheClient


class BaseService:
    """
    Base class for log store services.

    Args:
        logger: Structured logger instance
    """

    def __init__(self, logger: Logger) -> None:
        self.log = logger

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a service operation with structured context."""
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation_name": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """Log a service error with full context and traceback."""
        self.log.error(
            f"Service error during {operation}: {str(error)}",
            extra={
                "operation_name": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
            exc_info=error,
        )

    async def populate_cache(
        self,
        cache: CacheClient,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Write a cache entry without letting a cache failure fail the caller.

        Returns:
            True if the entry was written, False if the write failed
        """
        try:
            return bool(await cache.set(key, value, ttl_seconds))
        except Exception as exc:
            self.log.warning(
                "Cache population failed",
                extra={
                    "key": key,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False
