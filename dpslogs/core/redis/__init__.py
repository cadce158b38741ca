"""
Redis infrastructure.

Exports
-------
RedisService - async Redis cache client (get/set/delete with TTL)
CacheClient  - protocol implemented by RedisService and test fakes

Example Usage
-------------
>>> cache = await RedisService.connect()
>>> await cache.set("log:abc", payload, ttl_seconds=300)
>>> value = await cache.get("log:abc")
>>> await cache.shutdown()
"""

from __future__ import annotations

from dpslogs.core.redis.service import DEFAULT_TTL_SECONDS, CacheClient, RedisService

__all__ = [
    "RedisService",
    "CacheClient",
    "DEFAULT_TTL_SECONDS",
]
