"""
LogRecord / LogEntityRecord: persisted encounter logs. Schema only.

A log is stored as one `logs` row holding the full submitted document plus
the columns the search filters on, and one `log_entities` row per
participant. Filtering on entity attributes joins the two tables, which is
how a log's entity list is expanded into one row per entity.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dpslogs.core.database.base import Base, utc_now


class LogRecord(Base):
    """
    Encounter log.

    Columns:
    - id (opaque string primary key)
    - creator_id (uploader user id, null for anonymous uploads)
    - created_at (upload time, indexed for time-range searches)
    - dps (party DPS, copied from damageStatistics.dps)
    - document (full submitted log without id/creator/createdAt)
    """

    __tablename__ = "logs"
    __table_args__ = (
        Index("ix_logs_creator_created", "creator_id", "created_at"),
        Index("ix_logs_dps", "dps"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    creator_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        doc="Uploader user id; null for anonymous uploads",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )

    dps: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    document: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        doc="Submitted log document",
    )

    entities: Mapped[List["LogEntityRecord"]] = relationship(
        back_populates="log",
        cascade="all, delete-orphan",
        order_by="LogEntityRecord.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<LogRecord("
            f"id={self.id}, "
            f"creator={self.creator_id}, "
            f"dps={self.dps}"
            f")>"
        )


class LogEntityRecord(Base):
    """One participant of a log, denormalized for filtering."""

    __tablename__ = "log_entities"
    __table_args__ = (
        Index("ix_log_entities_npc_type", "npc_id", "type"),
        Index("ix_log_entities_class", "class_id"),
    )

    log_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("logs.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)

    type: Mapped[str] = mapped_column(String(16), nullable=False)
    npc_id: Mapped[int] = mapped_column(Integer, nullable=False)
    class_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    gear_level: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    log: Mapped[LogRecord] = relationship(back_populates="entities")

    def __repr__(self) -> str:
        return (
            f"<LogEntityRecord("
            f"log={self.log_id}, "
            f"pos={self.position}, "
            f"type={self.type}, "
            f"npc={self.npc_id}"
            f")>"
        )
