"""
DPS log storage, validation and filtered search.
"""

from dpslogs.modules.logs.bosses import SupportedBossRegistry
from dpslogs.modules.logs.cache import LogRecordCache
from dpslogs.modules.logs.constants import EntityType
from dpslogs.modules.logs.entities import UniqueEntityDiscovery
from dpslogs.modules.logs.plan import QueryPlan, build_plan
from dpslogs.modules.logs.repository import LogRepository, LogStore
from dpslogs.modules.logs.schemas import (
    DamageStatistics,
    Entity,
    GroupRow,
    Log,
    LogFilter,
    SearchResult,
    UniqueEntity,
)
from dpslogs.modules.logs.search import FilteredLogSearch
from dpslogs.modules.logs.service import LogsService
from dpslogs.modules.logs.validator import ConstraintViolation, LogValidator

__all__ = [
    "ConstraintViolation",
    "DamageStatistics",
    "Entity",
    "EntityType",
    "FilteredLogSearch",
    "GroupRow",
    "Log",
    "LogFilter",
    "LogRecordCache",
    "LogRepository",
    "LogStore",
    "LogValidator",
    "LogsService",
    "QueryPlan",
    "SearchResult",
    "SupportedBossRegistry",
    "UniqueEntity",
    "UniqueEntityDiscovery",
    "build_plan",
]
