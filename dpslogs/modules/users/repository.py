"""
User repository: resolves upload API keys to user identities.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from dpslogs.core.database.service import DatabaseService
from dpslogs.core.logging.logger import get_logger
from dpslogs.modules.shared.base_repository import BaseRepository
from dpslogs.modules.users.model import User

logger = get_logger(__name__)


@runtime_checkable
class UserResolver(Protocol):
    """Anything that can turn an API key into a user (or None)."""

    async def find_by_api_key(self, key: str) -> Optional[User]: ...


class UserRepository(BaseRepository[User]):
    def __init__(self, database: DatabaseService) -> None:
        super().__init__(User, logger)
        self._database = database

    async def find_by_api_key(self, key: str) -> Optional[User]:
        async with self._database.get_session() as session:
            return await self.find_one_where(session, User.api_key == key)

    async def create_user(self, user: User) -> User:
        async with self._database.get_transaction() as session:
            return await self.create(session, user)
