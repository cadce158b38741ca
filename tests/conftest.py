"""
Pytest Configuration and Fixtures for the DPS log store tests
=============================================================

Purpose
-------
Centralized fixtures shared by unit and integration tests.

Responsibilities
----------------
- In-memory fakes for the cache client and the user resolver
- SQLite (aiosqlite) DatabaseService for repository-level tests
- Testcontainers setup for PostgreSQL and Redis (integration tests only)
- Log document factory

Architecture Notes
------------------
- Unit tests use fakes and an in-memory SQLite database (fast, isolated)
- Integration tests use testcontainers (real Postgres / Redis)
- Containers are session scoped; databases and services are per test
"""

from __future__ import annotations

import os

# Environment must be set before dpslogs.core.config is imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, Generator, Iterable, List, Optional, Tuple

import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer
from testcontainers.redis import RedisContainer

from dpslogs.core.database.service import DatabaseService
from dpslogs.core.logging.logger import clear_log_context, get_logger
from dpslogs.modules.logs.bosses import SupportedBossRegistry
from dpslogs.modules.logs.repository import LogRepository
from dpslogs.modules.logs.schemas import Log
from dpslogs.modules.users.model import User

logger = get_logger(__name__)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

VALTAN = 480010
VYKAS = 480210
VERTUS = 512002
SUPPORTED_TEST_BOSSES = (VALTAN, VYKAS, VERTUS)

BASE_TIME = datetime(2023, 1, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# FAKES
# ============================================================================


class FakeCache:
    """
    In-memory CacheClient.

    `fail_reads` / `fail_writes` / `fail_deletes` make the matching
    operation raise ConnectionError. Every write is recorded in `writes`.
    """

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.writes: List[str] = []
        self.deletes: List[str] = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_deletes = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise ConnectionError("cache unavailable")
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        if self.fail_writes:
            raise ConnectionError("cache unavailable")
        self.store[key] = value
        self.ttls[key] = ttl_seconds
        self.writes.append(key)
        return True

    async def delete(self, key: str) -> int:
        if self.fail_deletes:
            raise ConnectionError("cache unavailable")
        self.deletes.append(key)
        return 1 if self.store.pop(key, None) is not None else 0


class FakeUserResolver:
    def __init__(self, users: Iterable[User] = ()) -> None:
        self.by_key: Dict[str, User] = {u.api_key: u for u in users}
        self.lookups: List[str] = []

    async def find_by_api_key(self, key: str) -> Optional[User]:
        self.lookups.append(key)
        return self.by_key.get(key)


# ============================================================================
# FACTORIES
# ============================================================================


def make_log_data(
    dps: float = 1000.0,
    bosses: Iterable[int] = (VALTAN,),
    players: Iterable[Tuple[int, float, float]] = ((102, 60, 1540),),
    created_at: Optional[datetime] = None,
    creator: Optional[str] = None,
    boss_type: str = "BOSS",
    **extra: Any,
) -> Dict[str, Any]:
    """
    Build a raw log document.

    `players` items are `(classId, level, gearLevel)`.
    """
    entities: List[Dict[str, Any]] = [
        {"type": boss_type, "npcId": npc_id, "classId": 0, "level": 60, "gearLevel": 0, "name": f"boss-{npc_id}"}
        for npc_id in bosses
    ]
    entities.extend(
        {"type": "PLAYER", "npcId": 0, "classId": class_id, "level": level, "gearLevel": gear, "name": f"player-{i}"}
        for i, (class_id, level, gear) in enumerate(players)
    )

    data: Dict[str, Any] = {
        "entities": entities,
        "damageStatistics": {"dps": dps, "totalDamageDealt": int(dps * 180)},
        "duration": 180000,
        **extra,
    }
    if created_at is not None:
        data["createdAt"] = created_at.isoformat()
    if creator is not None:
        data["creator"] = creator
    return data


def make_log(**kwargs: Any) -> Log:
    return Log.model_validate(make_log_data(**kwargs))


def make_user(user_id: str = "user-1", api_key: str = "key-1") -> User:
    return User(id=user_id, username=f"name-{user_id}", api_key=api_key)


def minutes_after_base(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_log_context() -> Generator[None, None, None]:
    yield
    clear_log_context()


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def user() -> User:
    return make_user()


@pytest.fixture
def fake_users(user: User) -> FakeUserResolver:
    return FakeUserResolver([user])


@pytest.fixture
def registry() -> SupportedBossRegistry:
    return SupportedBossRegistry(SUPPORTED_TEST_BOSSES)


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[DatabaseService, None]:
    """Fresh in-memory SQLite database with the full schema."""
    service = DatabaseService(url=TEST_DATABASE_URL)
    await service.initialize()
    await service.create_all()
    yield service
    await service.shutdown()


@pytest.fixture
def repository(database: DatabaseService) -> LogRepository:
    return LogRepository(database)


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
    container.start()
    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    """
    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    container.start()
    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()
