"""
Unique entity discovery: which bosses/guardians appear in stored logs.

Results are cached under `uniqueEntities:{types}` for the standard TTL and are
not invalidated when a log is created; a newly seen boss shows up once the
entry expires.
"""

from __future__ import annotations

import json
from typing import Iterable, List, Optional

from dpslogs.core.logging.logger import get_logger
from dpslogs.core.redis.service import CacheClient
from dpslogs.modules.logs.constants import (
    CACHE_TTL_SECONDS,
    DEFAULT_UNIQUE_ENTITY_TYPES,
    EntityType,
    unique_entities_cache_key,
)
from dpslogs.modules.logs.repository import LogStore
from dpslogs.modules.logs.schemas import UniqueEntity
from dpslogs.modules.shared.base_service import BaseService
from dpslogs.modules.shared.exceptions import StoreFailedError

logger = get_logger(__name__)


class UniqueEntityDiscovery(BaseService):
    def __init__(self, store: LogStore, cache: CacheClient) -> None:
        super().__init__(logger)
        self.store = store
        self.cache = cache

    async def discover(self, types: Optional[Iterable[EntityType]] = None) -> List[UniqueEntity]:
        """
        Distinct (npcId, type) pairs among entities of the given types.

        Args:
            types: Entity types to include; defaults to BOSS and GUARDIAN when
                omitted. An empty collection matches nothing.

        Raises:
            StoreFailedError: If the lookup failed
        """
        if types is None:
            wanted = DEFAULT_UNIQUE_ENTITY_TYPES
        else:
            wanted = tuple(sorted({EntityType(t) for t in types}, key=lambda t: t.value))
        key = unique_entities_cache_key(wanted)

        try:
            cached = await self.cache.get(key)
            if cached is not None:
                return [UniqueEntity.from_dict(item) for item in json.loads(cached)]

            found = await self.store.unique_entities(wanted)
        except Exception as exc:
            self.log_error("get_unique_entities", exc, types=[t.value for t in wanted])
            raise StoreFailedError("Error getting bosses") from exc

        await self.populate_cache(
            self.cache,
            key,
            json.dumps([entity.to_dict() for entity in found]),
            CACHE_TTL_SECONDS,
        )
        return found
