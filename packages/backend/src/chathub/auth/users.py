"""User store — identity lookups for auth-gating.

Learn: The hub never sees credentials. It only needs get_user(id) to
confirm that a token's subject is a real account. Two backends, chosen
like the message store:
    postgres → users table (rows written by the external auth service)
    memory   → process-local dict; in development it auto-provisions any
               positive id on first sight so a fresh checkout works with a
               token minted by `chathub token`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.config import settings
from chathub.db.engine import get_db
from chathub.db.models import User


@dataclass
class UserRecord:
    id: int
    email: str
    username: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class UserStore(ABC):
    """Abstract identity lookup."""

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[Any]:
        pass


class InMemoryUserStore(UserStore):
    def __init__(self, auto_provision: bool = False):
        self.auto_provision = auto_provision
        self._users: dict[int, UserRecord] = {}

    def add_user(self, user_id: int, email: str, username: Optional[str] = None) -> UserRecord:
        user = UserRecord(id=user_id, email=email, username=username)
        self._users[user_id] = user
        return user

    async def get_user(self, user_id: int) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        if user is None and self.auto_provision and user_id > 0:
            user = self.add_user(user_id, f"user{user_id}@localhost")
        return user


class PostgresUserStore(UserStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)


memory_users = InMemoryUserStore(
    auto_provision=settings.environment == "development"
)


def get_user_store(db: AsyncSession = Depends(get_db)) -> UserStore:
    """FastAPI dependency — the configured user store."""
    if settings.store_backend == "postgres":
        return PostgresUserStore(db)
    return memory_users
