"""
Query plan builder for filtered log searches.

Purpose
-------
Translate a `LogFilter` (plus the creator resolved from its API key) into an
ordered, backend-neutral stage list:

    match (pre-filter) -> unwind entities -> match (post-filter) -> group -> sort

The plan is pure data. `LogRepository.aggregate()` compiles it to SQL, and its
canonical serialization is hashed to key the `filteredLogs:` cache entry.

Canonical Form
--------------
- Conditions are serialized in field order, then operator order
- `$in` lists are sorted and de-duplicated
- Timestamps are ISO 8601 UTC strings
- JSON is dumped with sorted keys and compact separators

Two filters that select the same logs in the same order therefore produce the
same hash regardless of how their id lists were ordered.
"""

from __future__ import annotations

import enum
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from dpslogs.modules.logs.constants import filtered_logs_cache_key
from dpslogs.modules.logs.schemas import LogFilter, ensure_utc

# Document paths used in plan conditions
CREATOR = "creator"
CREATED_AT = "createdAt"
ENTITY_NPC_ID = "entities.npcId"
ENTITY_CLASS_ID = "entities.classId"
ENTITY_LEVEL = "entities.level"
ENTITY_GEAR_LEVEL = "entities.gearLevel"
PARTY_DPS = "damageStatistics.dps"

GROUP_KEYS = ("id", "createdAt", "dps")


class Op(str, enum.Enum):
    EQ = "$eq"
    IN = "$in"
    GTE = "$gte"
    LTE = "$lte"


@dataclass(frozen=True)
class Condition:
    field: str
    op: Op
    value: Any


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class MatchStage:
    conditions: Tuple[Condition, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        by_field: Dict[str, Dict[str, Any]] = {}
        for cond in self.conditions:
            by_field.setdefault(cond.field, {})[cond.op.value] = _plain(cond.value)
        return {"$match": by_field}

    def on(self, field_name: str) -> List[Condition]:
        return [c for c in self.conditions if c.field == field_name]


@dataclass(frozen=True)
class UnwindStage:
    path: str = "entities"
    preserve_empty: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "$unwind": {
                "path": f"${self.path}",
                "preserveNullAndEmptyArrays": self.preserve_empty,
            }
        }


@dataclass(frozen=True)
class GroupStage:
    keys: Tuple[str, ...] = GROUP_KEYS

    def to_dict(self) -> Dict[str, Any]:
        return {"$group": {"_id": {k: f"${k}" for k in self.keys}}}


@dataclass(frozen=True)
class SortStage:
    field: str
    direction: int

    @property
    def ascending(self) -> bool:
        return self.direction == 1

    def to_dict(self) -> Dict[str, Any]:
        return {"$sort": {self.field: self.direction}}


Stage = Union[MatchStage, UnwindStage, GroupStage, SortStage]


@dataclass(frozen=True)
class QueryPlan:
    """Immutable five-stage plan. Index positions are fixed."""

    stages: Tuple[Stage, ...]

    @property
    def pre_match(self) -> MatchStage:
        return self.stages[0]  # type: ignore[return-value]

    @property
    def unwind(self) -> UnwindStage:
        return self.stages[1]  # type: ignore[return-value]

    @property
    def post_match(self) -> MatchStage:
        return self.stages[2]  # type: ignore[return-value]

    @property
    def group(self) -> GroupStage:
        return self.stages[3]  # type: ignore[return-value]

    @property
    def sort(self) -> SortStage:
        return self.stages[4]  # type: ignore[return-value]

    def to_list(self) -> List[Dict[str, Any]]:
        return [stage.to_dict() for stage in self.stages]

    def serialize(self) -> str:
        return json.dumps(self.to_list(), sort_keys=True, separators=(",", ":"))

    def hash(self) -> str:
        return hashlib.md5(self.serialize().encode("utf-8")).hexdigest()

    def cache_key(self) -> str:
        return filtered_logs_cache_key(self.hash())


def _sort_for(log_filter: LogFilter) -> SortStage:
    if log_filter.sort is not None:
        sort_field, direction = log_filter.sort
        return SortStage(field=sort_field, direction=direction)
    if log_filter.has_range:
        return SortStage(field=CREATED_AT, direction=-1)
    return SortStage(field="dps", direction=-1)


def build_plan(log_filter: LogFilter, creator_id: Optional[str] = None) -> QueryPlan:
    """
    Build the query plan for a filter.

    Args:
        log_filter: Parsed search filter
        creator_id: Id of the user resolved from the filter's API key, or None
            for an unrestricted search
    """
    pre: List[Condition] = []
    if creator_id is not None:
        pre.append(Condition(CREATOR, Op.EQ, creator_id))
    if log_filter.bosses:
        pre.append(Condition(ENTITY_NPC_ID, Op.IN, tuple(sorted(set(log_filter.bosses)))))
    if log_filter.has_range:
        start, end = log_filter.range
        pre.append(Condition(CREATED_AT, Op.GTE, ensure_utc(start)))
        pre.append(Condition(CREATED_AT, Op.LTE, ensure_utc(end)))

    level_min, level_max = log_filter.level
    gear_min, gear_max = log_filter.gear_level
    post: List[Condition] = [
        Condition(ENTITY_LEVEL, Op.GTE, float(level_min)),
        Condition(ENTITY_LEVEL, Op.LTE, float(level_max)),
        Condition(ENTITY_GEAR_LEVEL, Op.GTE, float(gear_min)),
        Condition(ENTITY_GEAR_LEVEL, Op.LTE, float(gear_max)),
    ]
    if log_filter.classes:
        post.append(Condition(ENTITY_CLASS_ID, Op.IN, tuple(sorted(set(log_filter.classes)))))
    post.append(Condition(PARTY_DPS, Op.GTE, float(log_filter.party_dps)))

    return QueryPlan(
        stages=(
            MatchStage(tuple(pre)),
            UnwindStage(),
            MatchStage(tuple(post)),
            GroupStage(),
            _sort_for(log_filter),
        )
    )
