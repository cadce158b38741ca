"""
Log store constants: entity types, filter defaults and cache key templates.

Cache Keys
----------
- `log:{log_id}`                 single log document
- `filteredLogs:{plan_hash}`     grouped ID rows for one query plan
- `uniqueEntities:{types}`       distinct (npcId, type) pairs, types sorted
"""

from __future__ import annotations

import enum
from typing import Iterable


class EntityType(str, enum.Enum):
    """Participant kinds recorded in an encounter log."""

    UNKNOWN = "UNKNOWN"
    MONSTER = "MONSTER"
    BOSS = "BOSS"
    GUARDIAN = "GUARDIAN"
    PLAYER = "PLAYER"
    NPC = "NPC"
    ESTHER = "ESTHER"


# All cache entries expire after five minutes.
CACHE_TTL_SECONDS = 300

DEFAULT_PAGE_SIZE = 10
DEFAULT_LEVEL_RANGE = (0, 60)
DEFAULT_GEAR_LEVEL_RANGE = (302, 1625)
DEFAULT_PARTY_DPS = 0
DEFAULT_UNIQUE_ENTITY_TYPES = (EntityType.BOSS, EntityType.GUARDIAN)

SORTABLE_FIELDS = ("id", "createdAt", "dps")


def log_cache_key(log_id: str) -> str:
    return f"log:{log_id}"


def filtered_logs_cache_key(plan_hash: str) -> str:
    return f"filteredLogs:{plan_hash}"


def unique_entities_cache_key(types: Iterable[EntityType]) -> str:
    return "uniqueEntities:" + ",".join(sorted({EntityType(t).value for t in types}))
