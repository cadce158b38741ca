"""
RedisService: async Redis cache client for the DPS log store.

Purpose
-------
Provide an observable Redis abstraction used as the cache client by the log
record cache, the filtered search and unique-entity discovery:
- Async client with connection pooling
- Simple KV operations (get/set/delete/exists) with structured logging
- Health check via PING

Responsibilities
----------------
- Create and own a redis-py asyncio client
- Expose string KV operations; callers serialize their own values
- Log every operation with key, latency and outcome
- Re-raise Redis failures so callers decide whether they are fatal

Non-Responsibilities
--------------------
- Business logic of any kind
- Retries and timeouts (handled by the redis client configuration)
- Serialization of cached values

Configuration Keys
------------------
- Config.REDIS_URL             : str (e.g., "redis://localhost:6379/0")
- Config.REDIS_SOCKET_TIMEOUT  : int (default 5)
- Config.REDIS_MAX_CONNECTIONS : int (default 50)

Architecture Notes
------------------
- One instance per process, created at startup and injected into components
- Any object with the same get/set/delete coroutines satisfies `CacheClient`
"""

from __future__ import annotations

import time
from typing import Any, Optional, Protocol, runtime_checkable

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import ConnectionError as RedisConnectionError, RedisError

from dpslogs.core.config.config import Config
from dpslogs.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300


@runtime_checkable
class CacheClient(Protocol):
    """Key/value store with expiring string entries."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool: ...

    async def delete(self, key: str) -> int: ...


class RedisService:
    """
    Async Redis cache client.

    Wraps a redis-py asyncio client and logs every KV operation with its
    latency. Failures are logged and re-raised.
    """

    def __init__(self, client: AsyncRedis) -> None:
        self._client: Optional[AsyncRedis] = client
        self._is_healthy = False

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def connect(
        cls,
        url: Optional[str] = None,
        socket_timeout: Optional[int] = None,
        max_connections: Optional[int] = None,
    ) -> RedisService:
        """
        Create a client from configuration and verify connectivity.

        Raises
        ------
        RuntimeError
            If the Redis server cannot be reached.
        """
        url = url or Config.REDIS_URL
        socket_timeout = socket_timeout or Config.REDIS_SOCKET_TIMEOUT
        max_connections = max_connections or Config.REDIS_MAX_CONNECTIONS
        url_scheme = url.split("://")[0] if "://" in url else "unknown"

        start_time = time.monotonic()
        client: AsyncRedis = AsyncRedis.from_url(
            url,
            socket_timeout=socket_timeout,
            encoding="utf-8",
            decode_responses=True,
            max_connections=max_connections,
            health_check_interval=30,
        )

        try:
            await client.ping()  # type: ignore[misc]
        except Exception as exc:
            await client.aclose()
            logger.critical(
                "Failed to initialize RedisService",
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "url_scheme": url_scheme,
                },
                exc_info=True,
            )
            raise RuntimeError(f"Failed to initialize RedisService: {exc}") from exc

        service = cls(client)
        service._is_healthy = True

        logger.info(
            "RedisService initialized successfully",
            extra={
                "url_scheme": url_scheme,
                "socket_timeout_seconds": socket_timeout,
                "max_connections": max_connections,
                "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return service

    async def shutdown(self) -> None:
        """Close the client. Safe to call more than once."""
        client = self._client
        self._client = None
        self._is_healthy = False

        if client is None:
            logger.debug("RedisService not initialized, nothing to shutdown")
            return

        try:
            await client.aclose()
            logger.info("RedisService shutdown complete")
        except Exception as exc:
            logger.error(
                "Error during RedisService shutdown",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    # ═══════════════════════════════════════════════════════════════════════
    # HEALTH & STATUS
    # ═══════════════════════════════════════════════════════════════════════

    async def health_check(self) -> bool:
        """
        Verify Redis connectivity via PING command.

        Returns
        -------
        bool
            True if Redis is reachable and responsive, False otherwise.
        """
        if self._client is None:
            logger.warning("Health check failed: RedisService not initialized")
            self._is_healthy = False
            return False

        try:
            start_time = time.monotonic()
            pong = await self._client.ping()  # type: ignore[misc]
            latency_ms = (time.monotonic() - start_time) * 1000
        except (RedisConnectionError, RedisError) as exc:
            self._is_healthy = False
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            return False

        self._is_healthy = bool(pong)
        if self._is_healthy:
            logger.debug(
                "Redis health check passed",
                extra={"latency_ms": round(latency_ms, 2)},
            )
        else:
            logger.warning("Redis health check failed: PING returned False")
        return self._is_healthy

    def is_healthy(self) -> bool:
        """Return cached health status without performing I/O."""
        return self._is_healthy

    def client(self) -> AsyncRedis:
        """
        Return the underlying Redis client.

        Raises
        ------
        RuntimeError
            If the service has been shut down.
        """
        if self._client is None:
            raise RuntimeError(
                "RedisService not initialized. "
                "Call `await RedisService.connect()` first."
            )
        return self._client

    # ═══════════════════════════════════════════════════════════════════════
    # KV OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    def _log_failure(self, operation: str, key: str, start_time: float, exc: Exception, **extra: Any) -> None:
        logger.error(
            f"Redis {operation} operation failed",
            extra={
                "key": key,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
                "error": str(exc),
                "error_type": type(exc).__name__,
                **extra,
            },
            exc_info=True,
        )

    async def get(self, key: str) -> Optional[str]:
        """
        Get a string value from Redis.

        Returns
        -------
        Optional[str]
            The value if it exists, None otherwise.
        """
        start_time = time.monotonic()
        try:
            result = await self.client().get(key)
        except Exception as exc:
            self._log_failure("GET", key, start_time, exc)
            raise

        logger.debug(
            "Redis GET operation",
            extra={
                "key": key,
                "found": result is not None,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return result

    async def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Set a string value with a TTL (defaults to five minutes).

        Returns
        -------
        bool
            True if Redis acknowledged the write.
        """
        if ttl_seconds is None:
            ttl_seconds = DEFAULT_TTL_SECONDS

        start_time = time.monotonic()
        try:
            result = await self.client().set(key, value, ex=ttl_seconds)
        except Exception as exc:
            self._log_failure("SET", key, start_time, exc, ttl_seconds=ttl_seconds)
            raise

        success = bool(result)
        logger.debug(
            "Redis SET operation",
            extra={
                "key": key,
                "ttl_seconds": ttl_seconds,
                "success": success,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return success

    async def delete(self, key: str) -> int:
        """
        Delete a key from Redis.

        Returns
        -------
        int
            Number of keys deleted (0 or 1).
        """
        start_time = time.monotonic()
        try:
            count = await self.client().delete(key)
        except Exception as exc:
            self._log_failure("DELETE", key, start_time, exc)
            raise

        deleted = int(count)
        logger.debug(
            "Redis DELETE operation",
            extra={
                "key": key,
                "deleted_count": deleted,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return deleted

    async def exists(self, key: str) -> bool:
        """Check whether a key exists."""
        start_time = time.monotonic()
        try:
            count = await self.client().exists(key)
        except Exception as exc:
            self._log_failure("EXISTS", key, start_time, exc)
            raise
        return bool(count)
