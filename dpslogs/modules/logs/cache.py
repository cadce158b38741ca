"""
Log record cache: single-log reads and writes behind `log:{id}`.

Purpose
-------
Read-through / write-through cache for individual logs.

- get:               cache -> store on miss (or bypass) -> populate cache
- create:            store -> populate cache with the created record
- delete:            store -> evict cache entry unconditionally
- delete_by_creator: bulk store delete only (entries expire on their own)

Failure Semantics
-----------------
- Cache read failures and undecodable entries are logged and treated as a miss
- Cache population is best-effort (WARNING, never raised)
- Store failures become `StoreFailedError`; nothing is written to the cache
- A failed eviction after a successful delete becomes `StoreFailedError`
"""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from dpslogs.core.logging.logger import get_logger
from dpslogs.core.redis.service import CacheClient
from dpslogs.modules.logs.constants import CACHE_TTL_SECONDS, log_cache_key
from dpslogs.modules.logs.repository import LogStore
from dpslogs.modules.logs.schemas import Log
from dpslogs.modules.shared.base_service import BaseService
from dpslogs.modules.shared.exceptions import (
    DpsLogsDomainException,
    NotFoundError,
    StoreFailedError,
)

logger = get_logger(__name__)


class LogRecordCache(BaseService):
    def __init__(self, store: LogStore, cache: CacheClient) -> None:
        super().__init__(logger)
        self.store = store
        self.cache = cache

    async def _read_cached(self, key: str) -> Optional[Log]:
        try:
            raw = await self.cache.get(key)
        except Exception as exc:
            self.log.warning(
                "Cache read failed; falling back to store",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return None

        if raw is None:
            return None

        try:
            return Log.model_validate_json(raw)
        except ValidationError as exc:
            self.log.warning(
                "Discarding undecodable cache entry",
                extra={"key": key, "error": str(exc)},
            )
            return None

    async def _write_cached(self, log: Log) -> None:
        await self.populate_cache(
            self.cache,
            log_cache_key(log.id),
            log.model_dump_json(by_alias=True),
            CACHE_TTL_SECONDS,
        )

    async def get(self, log_id: str, bypass_cache: bool = False) -> Log:
        """
        Fetch a log by id.

        Raises:
            NotFoundError: If no log has this id
            StoreFailedError: If the store could not be read
        """
        key = log_cache_key(log_id)

        if not bypass_cache:
            cached = await self._read_cached(key)
            if cached is not None:
                self.log.debug("Log cache hit", extra={"log_id": log_id})
                return cached

        try:
            log = await self.store.fetch(log_id)
        except DpsLogsDomainException:
            raise
        except Exception as exc:
            self.log_error("get_log", exc, log_id=log_id)
            raise StoreFailedError("Error finding log") from exc

        if log is None:
            raise NotFoundError("Log", log_id)

        await self._write_cached(log)
        return log

    async def create(self, log: Log) -> Log:
        """
        Persist a log, then cache it.

        Raises:
            StoreFailedError: If the store rejected the write
        """
        try:
            created = await self.store.insert(log)
        except DpsLogsDomainException:
            raise
        except Exception as exc:
            self.log_error("create_log", exc, creator_id=log.creator)
            raise StoreFailedError("Error creating log") from exc

        await self._write_cached(created)
        return created

    async def delete(self, log_id: str) -> bool:
        """
        Delete a log and evict its cache entry.

        Returns:
            True if a log was removed
        """
        try:
            removed = await self.store.remove(log_id)
        except DpsLogsDomainException:
            raise
        except Exception as exc:
            self.log_error("delete_log", exc, log_id=log_id)
            raise StoreFailedError("Error deleting log") from exc

        try:
            await self.cache.delete(log_cache_key(log_id))
        except Exception as exc:
            self.log_error("evict_log", exc, log_id=log_id)
            raise StoreFailedError("Error deleting log") from exc

        self.log.info("Log deleted", extra={"log_id": log_id, "removed": removed})
        return removed

    async def delete_by_creator(self, creator_id: str) -> int:
        try:
            removed = await self.store.remove_by_creator(creator_id)
        except DpsLogsDomainException:
            raise
        except Exception as exc:
            self.log_error("delete_user_logs", exc, creator_id=creator_id)
            raise StoreFailedError("Error deleting user logs") from exc

        return removed
