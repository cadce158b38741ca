from dpslogs.modules.users.model import User
from dpslogs.modules.users.repository import UserRepository, UserResolver

__all__ = ["User", "UserRepository", "UserResolver"]
