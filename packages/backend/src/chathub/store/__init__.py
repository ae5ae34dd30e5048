"""Message storage backends.

Learn: Routes never construct a store directly — they depend on
get_message_store, which picks the backend from CHATHUB_STORE_BACKEND:
    memory   → one process-wide InMemoryMessageStore
    postgres → a PostgresMessageStore bound to the request's session
Tests override this dependency with a fresh in-memory store.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.config import settings
from chathub.db.engine import get_db
from chathub.store.base import MessageStore
from chathub.store.memory import InMemoryMessageStore, MessageRecord
from chathub.store.postgres import PostgresMessageStore

__all__ = [
    "InMemoryMessageStore",
    "MessageRecord",
    "MessageStore",
    "PostgresMessageStore",
    "get_message_store",
    "memory_store",
]

# Process-wide store for the memory backend
memory_store = InMemoryMessageStore()


def get_message_store(db: AsyncSession = Depends(get_db)) -> MessageStore:
    """FastAPI dependency — the configured message store."""
    if settings.store_backend == "postgres":
        return PostgresMessageStore(db)
    return memory_store
