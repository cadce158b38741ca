"""
DatabaseService: async SQLAlchemy engine and session management.

Purpose
-------
Own the async engine and session factory used by every repository, and
provide the two session scopes repositories work in:

- get_session()     -> reads, no implicit commit
- get_transaction() -> atomic writes, commit on success, rollback on error

Responsibilities
----------------
- Build the engine from Config (or an explicit URL for tests)
- Create the schema on demand (`create_all`)
- Structured logging of transaction outcomes

Non-Responsibilities
--------------------
- Query construction (repositories)
- Business rules (services)

Architecture Notes
------------------
- One instance per process, injected into repositories
- SQLite URLs (tests) get a StaticPool so the in-memory database is shared
  between sessions; PostgreSQL URLs use a sized QueuePool
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from dpslogs.core.config.config import Config
from dpslogs.core.database.base import Base
from dpslogs.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable snapshot of the settings the engine was built from."""

    url: str
    echo: bool
    pool_size: int
    max_overflow: int

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


class DatabaseService:
    """
    Async database engine and session management.

    Public API
    ----------
    - initialize() / shutdown()
    - create_all()
    - get_session()
    - get_transaction()
    - health_check()
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        self._config = _DatabaseConfigSnapshot(
            url=url or Config.DATABASE_URL,
            echo=Config.DATABASE_ECHO if echo is None else echo,
            pool_size=Config.DATABASE_POOL_SIZE,
            max_overflow=Config.DATABASE_MAX_OVERFLOW,
        )
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    async def initialize(self) -> None:
        """
        Create the engine and session factory. Idempotent.

        Raises
        ------
        DatabaseInitializationError
            If the URL is missing or the engine cannot be created.
        """
        if self._engine is not None:
            logger.debug("DatabaseService already initialized; skipping")
            return

        config = self._config
        if not config.url:
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        engine_kwargs: dict[str, Any] = {"echo": config.echo}
        if config.is_sqlite:
            engine_kwargs.update(
                {
                    "poolclass": StaticPool,
                    "connect_args": {"check_same_thread": False},
                }
            )
        else:
            engine_kwargs.update(
                {
                    "pool_size": config.pool_size,
                    "max_overflow": config.max_overflow,
                    "pool_pre_ping": True,
                }
            )

        try:
            self._engine = create_async_engine(config.url, **engine_kwargs)
        except Exception as exc:
            logger.error(
                "DatabaseService initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            raise DatabaseInitializationError(
                f"Database initialization failed: {exc}"
            ) from exc

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info(
            "DatabaseService initialized successfully",
            extra={"url_scheme": config.url_scheme},
        )

    async def shutdown(self) -> None:
        """Dispose the engine. No-op if already shut down."""
        if self._engine is None:
            logger.debug("DatabaseService not initialized; nothing to shutdown")
            return

        try:
            await self._engine.dispose()
            logger.info("DatabaseService shutdown complete")
        finally:
            self._engine = None
            self._session_factory = None

    async def create_all(self) -> None:
        """Create every table registered on `Base.metadata`."""
        engine = self._ensure_initialized()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema created")

    async def drop_all(self) -> None:
        engine = self._ensure_initialized()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def health_check(self) -> bool:
        """Run `SELECT 1`; False on any failure."""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logger.error(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    def _ensure_initialized(self) -> AsyncEngine:
        if self._engine is None or self._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService is not initialized. Call `await initialize()` first."
            )
        return self._engine

    # ========================================================================
    # Session Management
    # ========================================================================

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session without automatic commit.

        Use for read-only operations.
        """
        self._ensure_initialized()
        assert self._session_factory is not None

        start = time.perf_counter()
        async with self._session_factory() as session:
            try:
                yield session
            finally:
                logger.debug(
                    "Database session closed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session wrapped in an atomic transaction.

        Commits on success; rolls back and re-raises on any exception.

        Usage Example
        -------------
        >>> async with database.get_transaction() as session:
        ...     session.add(record)
        """
        self._ensure_initialized()
        assert self._session_factory is not None

        start = time.perf_counter()
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )
            except (OperationalError, DBAPIError) as exc:
                await session.rollback()
                logger.error(
                    f"{type(exc).__name__} in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise
            except Exception as exc:
                await session.rollback()
                logger.error(
                    "Error in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise
