"""
Log store value types.

Purpose
-------
Pydantic models for the log document and the search filter, plus the small
value objects that flow between the search, the cache and the repository.

- `Log`, `Entity`, `DamageStatistics`: structural shape of a submitted log.
  Field names follow the wire format (`npcId`, `damageStatistics`); Python
  attributes are snake_case. Unknown fields are kept.
- `LogFilter`: one search request. Build it with `LogFilter.parse()` to get
  `InvalidInputError` instead of a pydantic error.
- `GroupRow`: one grouped result row of a query plan (what gets cached).
- `UniqueEntity`: one distinct (npcId, type) pair.
- `SearchResult`: one page of a filtered search.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from dpslogs.modules.logs.constants import (
    DEFAULT_GEAR_LEVEL_RANGE,
    DEFAULT_LEVEL_RANGE,
    DEFAULT_PARTY_DPS,
    SORTABLE_FIELDS,
    EntityType,
)
from dpslogs.modules.shared.exceptions import InvalidInputError


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# LOG DOCUMENT
# ============================================================================


class Entity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: EntityType
    npc_id: int = Field(alias="npcId", ge=0)
    class_id: int = Field(alias="classId", ge=0)
    level: float = Field(ge=0)
    gear_level: float = Field(alias="gearLevel", ge=0)
    name: Optional[str] = None


class DamageStatistics(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    dps: float = Field(ge=0)


class Log(BaseModel):
    """
    A DPS log document.

    `id`, `creator` and `created_at` are assigned by the store; everything
    else comes from the uploader.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    creator: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    entities: List[Entity] = Field(min_length=1)
    damage_statistics: DamageStatistics = Field(alias="damageStatistics")

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @property
    def dps(self) -> float:
        return self.damage_statistics.dps

    def players(self) -> List[Entity]:
        return [e for e in self.entities if e.type == EntityType.PLAYER]

    def non_players(self) -> List[Entity]:
        return [e for e in self.entities if e.type != EntityType.PLAYER]

    def to_document(self) -> Dict[str, Any]:
        """Uploader-supplied part of the log, as stored in the document column."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"id", "creator", "created_at"},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Full wire representation, suitable for caching and HTTP responses."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# SEARCH FILTER
# ============================================================================


class LogFilter(BaseModel):
    """
    Search criteria for filtered log queries.

    Ranges are inclusive `(min, max)` pairs. `range` is either empty or a
    `[start, end]` pair of timestamps. `sort` is `(field, direction)` with
    direction 1 (ascending) or -1 (descending).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bosses: Tuple[int, ...] = ()
    classes: Tuple[int, ...] = ()
    range: Tuple[datetime, ...] = ()
    level: Tuple[float, float] = DEFAULT_LEVEL_RANGE
    gear_level: Tuple[float, float] = Field(default=DEFAULT_GEAR_LEVEL_RANGE, alias="gearLevel")
    party_dps: float = Field(default=DEFAULT_PARTY_DPS, alias="partyDps", ge=0)
    key: Optional[str] = None
    sort: Optional[Tuple[str, int]] = None
    page: int = 0

    @field_validator("bosses", "classes")
    @classmethod
    def _canonical_ids(cls, value: Tuple[int, ...]) -> Tuple[int, ...]:
        return tuple(sorted(set(value)))

    @field_validator("range")
    @classmethod
    def _range_pair(cls, value: Tuple[datetime, ...]) -> Tuple[datetime, ...]:
        if len(value) not in (0, 2):
            raise ValueError("range must be empty or [start, end]")
        value = tuple(ensure_utc(v) for v in value)
        if value and value[0] > value[1]:
            raise ValueError("range start must not be after range end")
        return value

    @field_validator("level", "gear_level")
    @classmethod
    def _ordered_bounds(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        if value[0] > value[1]:
            raise ValueError("minimum must not exceed maximum")
        return value

    @field_validator("key")
    @classmethod
    def _blank_key_is_absent(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("sort", mode="before")
    @classmethod
    def _normalize_sort(cls, value: Any) -> Any:
        if value is None or (isinstance(value, (list, tuple)) and len(value) == 0):
            return None
        if isinstance(value, Mapping):
            value = (value.get("field"), value.get("direction", -1))
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValueError("sort must be [field, direction]")

        sort_field, direction = value
        if sort_field not in SORTABLE_FIELDS:
            raise ValueError(f"sort field must be one of {', '.join(SORTABLE_FIELDS)}")

        if isinstance(direction, str):
            lowered = direction.lower()
            if lowered in ("asc", "ascending", "1"):
                direction = 1
            elif lowered in ("desc", "descending", "-1"):
                direction = -1
        if direction not in (1, -1):
            raise ValueError("sort direction must be 1 or -1")
        return (sort_field, int(direction))

    @field_validator("page")
    @classmethod
    def _clamp_page(cls, value: int) -> int:
        return max(value, 0)

    @property
    def has_range(self) -> bool:
        return len(self.range) == 2

    @classmethod
    def parse(cls, data: Mapping[str, Any] | "LogFilter" | None = None) -> "LogFilter":
        """
        Build a filter from request data.

        Raises:
            InvalidInputError: If any value is malformed
        """
        if isinstance(data, LogFilter):
            return data
        try:
            return cls.model_validate(dict(data or {}))
        except ValidationError as exc:
            first = exc.errors()[0]
            field_name = ".".join(str(part) for part in first["loc"]) or "filter"
            raise InvalidInputError(field_name, first["msg"]) from exc


# ============================================================================
# QUERY RESULTS
# ============================================================================


@dataclass(frozen=True)
class GroupRow:
    """One log matched by a query plan: its id and the sort keys."""

    id: str
    created_at: datetime
    dps: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": ensure_utc(self.created_at).isoformat(),
            "dps": self.dps,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GroupRow":
        return cls(
            id=str(data["id"]),
            created_at=ensure_utc(datetime.fromisoformat(data["createdAt"])),
            dps=float(data["dps"]),
        )


@dataclass(frozen=True)
class UniqueEntity:
    npc_id: int
    type: EntityType

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.npc_id, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UniqueEntity":
        return cls(npc_id=int(data["id"]), type=EntityType(data["type"]))


@dataclass
class SearchResult:
    total_found: int
    page: int
    total_pages: int
    logs: List[Log] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls(total_found=0, page=0, total_pages=0, logs=[])

    @staticmethod
    def page_count(total_found: int, page_size: int) -> int:
        return math.ceil(total_found / page_size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.total_found,
            "page": self.page,
            "pages": self.total_pages,
            "logs": [log.to_dict() for log in self.logs],
        }
