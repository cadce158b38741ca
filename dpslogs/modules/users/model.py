"""
User: uploader identity. Schema only.

Only the API-key lookup is used by the log store; account management lives
outside this package.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from dpslogs.core.database.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    api_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
