"""Message store interface.

Learn: The store is the pluggable storage backend for messages. Concrete
implementations: InMemoryMessageStore (development, tests) and
PostgresMessageStore (production). Everything above this layer — the
message service, the routes — only sees this interface.

Conventions every backend follows:
- Operations addressed by id raise MessageNotFoundError for unknown ids.
- Deleted messages stay addressable by id (get, restore, re-delete) but are
  excluded from every per-user query.
- list_for_user is oldest-first (it feeds the completion prompt);
  search / range / tag / favorite queries are newest-first.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional


class MessageStore(ABC):
    """Abstract repository for message records."""

    @abstractmethod
    async def create(
        self,
        user_id: int,
        content: str,
        role: str = "user",
        content_type: str = "text",
        tags: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Any:
        pass

    @abstractmethod
    async def get(self, message_id: int) -> Any:
        pass

    @abstractmethod
    async def edit(self, message_id: int, new_content: str) -> Any:
        pass

    @abstractmethod
    async def soft_delete(self, message_id: int) -> Any:
        pass

    @abstractmethod
    async def restore(self, message_id: int) -> Any:
        pass

    @abstractmethod
    async def toggle_favorite(self, message_id: int) -> Any:
        pass

    @abstractmethod
    async def add_reaction(self, message_id: int, user_id: int, kind: str) -> Any:
        pass

    @abstractmethod
    async def remove_reaction(self, message_id: int, user_id: int, kind: str) -> Any:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: int) -> list[Any]:
        pass

    @abstractmethod
    async def search(self, user_id: int, query: str) -> list[Any]:
        pass

    @abstractmethod
    async def by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Any]:
        pass

    @abstractmethod
    async def by_tags(self, user_id: int, tags: list[str]) -> list[Any]:
        pass

    @abstractmethod
    async def favorites_of(self, user_id: int) -> list[Any]:
        pass
