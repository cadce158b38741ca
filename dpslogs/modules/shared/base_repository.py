"""
Base Repository Pattern

Purpose
-------
Type-safe, generic repository abstraction for database operations following
SQLAlchemy 2.0 async patterns. Repositories encapsulate data access and
provide a consistent interface for CRUD operations.

Design Notes
------------
This base repository provides:
- Point lookup and batch lookup by primary key
- Insert and delete by primary key
- Counting
- Structured logging of every operation

What this class does NOT do:
- Manage transactions (callers pass a session from DatabaseService)
- Contain business logic
- Translate exceptions (services decide what a failure means)

Usage
-----
    class UserRepository(BaseRepository[User]):
        async def find_by_api_key(self, session, key):
            return await self.find_one_where(session, User.api_key == key)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic base repository for type-safe database operations.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    async def get(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> Optional[T]:
        """
        Get a single record by primary key.

        Returns:
            Model instance or None if not found
        """
        stmt = select(self.model_class).where(
            self.model_class.id == id_value  # type: ignore[attr-defined]
        )

        if eager_load:
            for relationship in eager_load:
                stmt = stmt.options(selectinload(relationship))

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": id_value,
                "found": instance is not None,
            },
        )

        return instance

    async def get_many(
        self,
        session: AsyncSession,
        id_values: Sequence[Any],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> List[T]:
        """
        Get multiple records by primary keys.

        Returns:
            List of model instances (may be fewer than requested, order not guaranteed)
        """
        if not id_values:
            return []

        stmt = select(self.model_class).where(
            self.model_class.id.in_(list(id_values))  # type: ignore[attr-defined]
        )

        if eager_load:
            for relationship in eager_load:
                stmt = stmt.options(selectinload(relationship))

        result = await session.execute(stmt)
        instances = list(result.scalars().all())

        self.log.debug(
            f"Repository.get_many: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "requested_count": len(id_values),
                "found_count": len(instances),
            },
        )

        return instances

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
    ) -> Optional[T]:
        """Get the first record matching all conditions, or None."""
        stmt = select(self.model_class).where(*conditions).limit(1)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add a new record and flush so generated values are populated."""
        session.add(instance)
        await session.flush()

        self.log.debug(
            f"Repository.create: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "id": getattr(instance, "id", None),
            },
        )

        return instance

    async def delete_by_id(self, session: AsyncSession, id_value: Any) -> bool:
        """
        Delete a record by primary key.

        Returns:
            True if a row was deleted
        """
        instance = await self.get(session, id_value)
        if instance is None:
            return False

        # ORM delete so configured cascades run
        await session.delete(instance)
        await session.flush()

        self.log.debug(
            f"Repository.delete_by_id: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "id": id_value},
        )
        return True

    async def delete_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
    ) -> int:
        """
        Bulk delete all records matching the conditions.

        Returns:
            Number of rows deleted
        """
        result = await session.execute(delete(self.model_class).where(*conditions))
        deleted = int(result.rowcount or 0)

        self.log.debug(
            f"Repository.delete_where: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__, "deleted_count": deleted},
        )
        return deleted
