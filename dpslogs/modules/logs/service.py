"""
LogsService: public entry point of the log store.

Purpose
-------
Wire the log components together behind one object and run every operation
inside a `LogContext`, so log lines carry the operation name and a
correlation id.

Responsibilities
----------------
- Single-log CRUD via `LogRecordCache`
- Filtered, paginated search via `FilteredLogSearch`
- Unique boss/guardian discovery via `UniqueEntityDiscovery`
- Validation via `LogValidator`; `submit_log` validates before persisting

Non-Responsibilities
--------------------
- HTTP, authentication (callers pass an already-resolved creator id)
- Engine / Redis lifecycle (callers own DatabaseService and RedisService)

Usage
-----
    database = DatabaseService()
    await database.initialize()
    redis = await RedisService.connect()

    logs = LogsService.from_services(database, redis)
    result = await logs.get_filtered_logs({"bosses": [480010]}, page_size=20)
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Union

from dpslogs.core.config import Config
from dpslogs.core.database.service import DatabaseService
from dpslogs.core.logging.logger import LogContext, get_logger
from dpslogs.core.redis.service import CacheClient
from dpslogs.modules.logs.bosses import SupportedBossRegistry
from dpslogs.modules.logs.cache import LogRecordCache
from dpslogs.modules.logs.constants import EntityType
from dpslogs.modules.logs.entities import UniqueEntityDiscovery
from dpslogs.modules.logs.repository import LogRepository, LogStore
from dpslogs.modules.logs.schemas import Log, LogFilter, SearchResult, UniqueEntity
from dpslogs.modules.logs.search import FilteredLogSearch
from dpslogs.modules.logs.validator import LogValidator
from dpslogs.modules.shared.base_service import BaseService
from dpslogs.modules.users.repository import UserRepository, UserResolver

logger = get_logger(__name__)

COMPONENT = "logs"


class LogsService(BaseService):
    def __init__(
        self,
        store: LogStore,
        cache: CacheClient,
        users: UserResolver,
        registry: SupportedBossRegistry,
        strict_validation: Optional[bool] = None,
    ) -> None:
        super().__init__(logger)
        self.records = LogRecordCache(store, cache)
        self.searcher = FilteredLogSearch(store, cache, users)
        self.entities = UniqueEntityDiscovery(store, cache)
        self.validator = LogValidator(registry, strict=strict_validation)

    @classmethod
    def from_services(
        cls,
        database: DatabaseService,
        cache: CacheClient,
        registry: Optional[SupportedBossRegistry] = None,
    ) -> "LogsService":
        """Build the default SQL-backed service around initialized infrastructure."""
        return cls(
            store=LogRepository(database),
            cache=cache,
            users=UserRepository(database),
            registry=registry or SupportedBossRegistry.default(),
        )

    # ========================================================================
    # Single logs
    # ========================================================================

    async def create_log(self, log: Log) -> Log:
        async with LogContext(component=COMPONENT, operation="create_log", user_id=log.creator):
            created = await self.records.create(log)
            self.log_operation("create_log", log_id=created.id)
            return created

    async def get_log_by_id(self, log_id: str, bypass_cache: bool = False) -> Log:
        async with LogContext(component=COMPONENT, operation="get_log_by_id", log_id=log_id):
            return await self.records.get(log_id, bypass_cache=bypass_cache)

    async def delete_log(self, log_id: str) -> bool:
        async with LogContext(component=COMPONENT, operation="delete_log", log_id=log_id):
            return await self.records.delete(log_id)

    async def delete_all_user_logs(self, user_id: str) -> int:
        async with LogContext(component=COMPONENT, operation="delete_all_user_logs", user_id=user_id):
            removed = await self.records.delete_by_creator(user_id)
            self.log_operation("delete_all_user_logs", deleted_count=removed)
            return removed

    # ========================================================================
    # Queries
    # ========================================================================

    async def get_unique_entities(
        self, types: Optional[Iterable[EntityType]] = None
    ) -> List[UniqueEntity]:
        async with LogContext(component=COMPONENT, operation="get_unique_entities"):
            return await self.entities.discover(types)

    async def get_filtered_logs(
        self,
        log_filter: Union[LogFilter, Mapping[str, Any], None] = None,
        page_size: Optional[int] = None,
    ) -> SearchResult:
        async with LogContext(component=COMPONENT, operation="get_filtered_logs"):
            return await self.searcher.search(
                log_filter,
                page_size=page_size if page_size is not None else Config.SEARCH_PAGE_SIZE,
            )

    # ========================================================================
    # Submission
    # ========================================================================

    async def validate_log(self, candidate: Union[Log, Mapping[str, Any]]) -> Log:
        async with LogContext(component=COMPONENT, operation="validate_log"):
            return self.validator.validate(candidate)

    async def submit_log(
        self,
        candidate: Union[Log, Mapping[str, Any]],
        creator_id: Optional[str] = None,
    ) -> Log:
        """Validate an uploaded log and persist it under `creator_id`."""
        async with LogContext(component=COMPONENT, operation="submit_log", user_id=creator_id):
            log = self.validator.validate(candidate)
            log = log.model_copy(update={"id": None, "creator": creator_id, "created_at": None})
            return await self.create_log(log)
