"""
Log repository: persistence store for DPS logs.

Purpose
-------
Owns every SQL statement touching `logs` / `log_entities`:
- point and batch reads, hydrated into `Log` models
- inserts (document + one entity row per participant)
- single and bulk (by creator) deletes
- execution of a `QueryPlan` into grouped `(id, createdAt, dps)` rows
- distinct (npcId, type) discovery

Non-Responsibilities
--------------------
- Caching (LogRecordCache / FilteredLogSearch)
- Translating failures into domain errors (callers do that)
- Validation (LogValidator runs before anything reaches here)

Plan Compilation
----------------
    pre-match      -> WHERE on logs; `entities.npcId $in` becomes EXISTS over
                      log_entities so a log matches when ANY entity matches
    unwind         -> INNER JOIN log_entities (logs without entities drop out)
    post-match     -> WHERE on the joined entity row and logs.dps
    group          -> GROUP BY logs.id, logs.created_at, logs.dps
    sort           -> ORDER BY sort column, then logs.id ascending
"""

from __future__ import annotations

import uuid
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.orm import aliased

from dpslogs.core.database.base import utc_now
from dpslogs.core.database.service import DatabaseService
from dpslogs.core.logging.logger import get_logger
from dpslogs.modules.logs.constants import EntityType
from dpslogs.modules.logs.model import LogEntityRecord, LogRecord
from dpslogs.modules.logs.plan import (
    CREATED_AT,
    CREATOR,
    ENTITY_CLASS_ID,
    ENTITY_GEAR_LEVEL,
    ENTITY_LEVEL,
    ENTITY_NPC_ID,
    PARTY_DPS,
    Condition,
    MatchStage,
    Op,
    QueryPlan,
)
from dpslogs.modules.logs.schemas import GroupRow, Log, UniqueEntity, ensure_utc
from dpslogs.modules.shared.base_repository import BaseRepository

logger = get_logger(__name__)


@runtime_checkable
class LogStore(Protocol):
    """Persistence operations the log services depend on."""

    async def fetch(self, log_id: str) -> Optional[Log]: ...

    async def fetch_many(self, log_ids: Sequence[str]) -> List[Log]: ...

    async def insert(self, log: Log) -> Log: ...

    async def remove(self, log_id: str) -> bool: ...

    async def remove_by_creator(self, creator_id: str) -> int: ...

    async def aggregate(self, plan: QueryPlan) -> List[GroupRow]: ...

    async def unique_entities(self, types: Iterable[EntityType]) -> List[UniqueEntity]: ...


_SORT_COLUMNS = {
    "id": LogRecord.id,
    "createdAt": LogRecord.created_at,
    "dps": LogRecord.dps,
}


def _compare(column: Any, cond: Condition) -> ColumnElement[bool]:
    if cond.op is Op.EQ:
        return column == cond.value
    if cond.op is Op.IN:
        return column.in_(list(cond.value))
    if cond.op is Op.GTE:
        return column >= cond.value
    if cond.op is Op.LTE:
        return column <= cond.value
    raise ValueError(f"Unsupported operator: {cond.op}")


class LogRepository(BaseRepository[LogRecord]):
    """SQLAlchemy-backed `LogStore`."""

    def __init__(self, database: DatabaseService) -> None:
        super().__init__(LogRecord, logger)
        self._database = database

    # ========================================================================
    # Hydration
    # ========================================================================

    @staticmethod
    def to_log(record: LogRecord) -> Log:
        data: Dict[str, Any] = dict(record.document)
        data["id"] = record.id
        data["creator"] = record.creator_id
        data["createdAt"] = ensure_utc(record.created_at)
        return Log.model_validate(data)

    @staticmethod
    def to_record(log: Log) -> LogRecord:
        record = LogRecord(
            id=log.id or uuid.uuid4().hex,
            creator_id=log.creator,
            created_at=ensure_utc(log.created_at) if log.created_at else utc_now(),
            dps=log.dps,
            document=log.to_document(),
        )
        record.entities = [
            LogEntityRecord(
                position=position,
                type=entity.type.value,
                npc_id=entity.npc_id,
                class_id=entity.class_id,
                level=entity.level,
                gear_level=entity.gear_level,
            )
            for position, entity in enumerate(log.entities)
        ]
        return record

    # ========================================================================
    # Reads
    # ========================================================================

    async def fetch(self, log_id: str) -> Optional[Log]:
        async with self._database.get_session() as session:
            record = await self.get(session, log_id)
            return self.to_log(record) if record is not None else None

    async def fetch_many(self, log_ids: Sequence[str]) -> List[Log]:
        """Batch read. Missing ids are skipped; order is not guaranteed."""
        async with self._database.get_session() as session:
            records = await self.get_many(session, log_ids)
            return [self.to_log(r) for r in records]

    # ========================================================================
    # Writes
    # ========================================================================

    async def insert(self, log: Log) -> Log:
        record = self.to_record(log)
        async with self._database.get_transaction() as session:
            await self.create(session, record)
            created = self.to_log(record)

        logger.info(
            "Log stored",
            extra={
                "log_id": created.id,
                "creator_id": created.creator,
                "entity_count": len(created.entities),
            },
        )
        return created

    async def remove(self, log_id: str) -> bool:
        async with self._database.get_transaction() as session:
            return await self.delete_by_id(session, log_id)

    async def remove_by_creator(self, creator_id: str) -> int:
        owned = select(LogRecord.id).where(LogRecord.creator_id == creator_id)
        async with self._database.get_transaction() as session:
            await session.execute(
                delete(LogEntityRecord)
                .where(LogEntityRecord.log_id.in_(owned))
                .execution_options(synchronize_session=False)
            )
            removed = await self.delete_where(session, LogRecord.creator_id == creator_id)

        logger.info(
            "Logs removed for creator",
            extra={"creator_id": creator_id, "deleted_count": removed},
        )
        return removed

    # ========================================================================
    # Plan execution
    # ========================================================================

    def _pre_filter(self, stage: MatchStage) -> List[ColumnElement[bool]]:
        clauses: List[ColumnElement[bool]] = []
        for cond in stage.conditions:
            if cond.field == CREATOR:
                clauses.append(_compare(LogRecord.creator_id, cond))
            elif cond.field == CREATED_AT:
                clauses.append(_compare(LogRecord.created_at, cond))
            elif cond.field == ENTITY_NPC_ID:
                any_entity = aliased(LogEntityRecord)
                clauses.append(
                    select(any_entity.log_id)
                    .where(any_entity.log_id == LogRecord.id)
                    .where(_compare(any_entity.npc_id, cond))
                    .exists()
                )
            else:
                raise ValueError(f"Unsupported pre-filter field: {cond.field}")
        return clauses

    def _post_filter(self, stage: MatchStage) -> List[ColumnElement[bool]]:
        columns = {
            ENTITY_LEVEL: LogEntityRecord.level,
            ENTITY_GEAR_LEVEL: LogEntityRecord.gear_level,
            ENTITY_CLASS_ID: LogEntityRecord.class_id,
            ENTITY_NPC_ID: LogEntityRecord.npc_id,
            PARTY_DPS: LogRecord.dps,
        }
        clauses: List[ColumnElement[bool]] = []
        for cond in stage.conditions:
            column = columns.get(cond.field)
            if column is None:
                raise ValueError(f"Unsupported post-filter field: {cond.field}")
            clauses.append(_compare(column, cond))
        return clauses

    def compile(self, plan: QueryPlan):
        """Build the SELECT for a plan without executing it."""
        stmt = (
            select(LogRecord.id, LogRecord.created_at, LogRecord.dps)
            .join(LogEntityRecord, LogEntityRecord.log_id == LogRecord.id)
            .where(*self._pre_filter(plan.pre_match))
            .where(*self._post_filter(plan.post_match))
            .group_by(LogRecord.id, LogRecord.created_at, LogRecord.dps)
        )

        sort_column = _SORT_COLUMNS[plan.sort.field]
        order = [sort_column.asc() if plan.sort.ascending else sort_column.desc()]
        if plan.sort.field != "id":
            order.append(LogRecord.id.asc())
        return stmt.order_by(*order)

    async def aggregate(self, plan: QueryPlan) -> List[GroupRow]:
        stmt = self.compile(plan)
        async with self._database.get_session() as session:
            result = await session.execute(stmt)
            rows = [
                GroupRow(id=row.id, created_at=ensure_utc(row.created_at), dps=float(row.dps))
                for row in result
            ]

        logger.debug(
            "Query plan executed",
            extra={"plan_hash": plan.hash(), "row_count": len(rows)},
        )
        return rows

    async def unique_entities(self, types: Iterable[EntityType]) -> List[UniqueEntity]:
        type_values = sorted({EntityType(t).value for t in types})
        if not type_values:
            return []

        stmt = (
            select(LogEntityRecord.npc_id, LogEntityRecord.type)
            .where(LogEntityRecord.type.in_(type_values))
            .distinct()
            .order_by(LogEntityRecord.type, LogEntityRecord.npc_id)
        )
        async with self._database.get_session() as session:
            result = await session.execute(stmt)
            return [
                UniqueEntity(npc_id=int(row.npc_id), type=EntityType(row.type))
                for row in result
            ]
