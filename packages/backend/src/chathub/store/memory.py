"""In-memory message store — the development and test backend.

Learn: Records live in a dict keyed by id. Each message gets its own
asyncio.Lock so mutations of one message are serialized while different
messages mutate independently (no store-wide lock).

Callers always receive a deep copy taken under the lock: the copy is the
post-mutation snapshot the hub broadcasts, and nothing outside the store
can reach into live records.
"""

import asyncio
import copy
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from chathub.errors import MessageNotFoundError
from chathub.store import mutations
from chathub.store.base import MessageStore


@dataclass
class MessageRecord:
    """Attribute-compatible stand-in for the ORM Message row."""

    id: int
    user_id: int
    role: str
    content: str
    content_type: str = "text"
    tags: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=mutations.utcnow)
    edited: bool = False
    edit_history: list[dict[str, str]] = field(default_factory=list)
    deleted: bool = False
    favorite: bool = False
    reactions: dict[str, Any] = field(
        default_factory=lambda: {"count": 0, "users": []}
    )


class InMemoryMessageStore(MessageStore):
    """Message store backed by process memory. Lost on restart."""

    def __init__(self):
        self._records: dict[int, MessageRecord] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._ids = itertools.count(1)

    # ─── Create / read ───────────────────────────────────

    async def create(
        self,
        user_id: int,
        content: str,
        role: str = "user",
        content_type: str = "text",
        tags: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> MessageRecord:
        mutations.validate_new_message(content, role, content_type)
        record = MessageRecord(
            id=next(self._ids),
            user_id=user_id,
            role=role,
            content=content,
            content_type=content_type,
            tags=mutations.normalize_tags(tags),
            meta=dict(metadata or {}),
        )
        self._locks[record.id] = asyncio.Lock()
        self._records[record.id] = record
        return copy.deepcopy(record)

    async def get(self, message_id: int) -> MessageRecord:
        return copy.deepcopy(self._require(message_id))

    # ─── Mutations ───────────────────────────────────────

    async def edit(self, message_id: int, new_content: str) -> MessageRecord:
        return await self._mutate(
            message_id, lambda r: mutations.apply_edit(r, new_content)
        )

    async def soft_delete(self, message_id: int) -> MessageRecord:
        return await self._mutate(message_id, mutations.apply_soft_delete)

    async def restore(self, message_id: int) -> MessageRecord:
        return await self._mutate(message_id, mutations.apply_restore)

    async def toggle_favorite(self, message_id: int) -> MessageRecord:
        return await self._mutate(message_id, mutations.apply_toggle_favorite)

    async def add_reaction(
        self, message_id: int, user_id: int, kind: str
    ) -> MessageRecord:
        mutations.validate_reaction_kind(kind)
        return await self._mutate(
            message_id, lambda r: mutations.apply_add_reaction(r, user_id)
        )

    async def remove_reaction(
        self, message_id: int, user_id: int, kind: str
    ) -> MessageRecord:
        mutations.validate_reaction_kind(kind)
        return await self._mutate(
            message_id, lambda r: mutations.apply_remove_reaction(r, user_id)
        )

    # ─── Queries ─────────────────────────────────────────

    async def list_for_user(self, user_id: int) -> list[MessageRecord]:
        return self._select(user_id, newest_first=False)

    async def search(self, user_id: int, query: str) -> list[MessageRecord]:
        return self._select(user_id, lambda r: mutations.matches_query(r, query))

    async def by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[MessageRecord]:
        return self._select(user_id, lambda r: mutations.in_range(r, start, end))

    async def by_tags(self, user_id: int, tags: list[str]) -> list[MessageRecord]:
        return self._select(user_id, lambda r: mutations.has_any_tag(r, tags))

    async def favorites_of(self, user_id: int) -> list[MessageRecord]:
        return self._select(user_id, lambda r: r.favorite)

    # ─── Internals ───────────────────────────────────────

    def _require(self, message_id: int) -> MessageRecord:
        record = self._records.get(message_id)
        if record is None:
            raise MessageNotFoundError(message_id)
        return record

    async def _mutate(
        self, message_id: int, apply: Callable[[MessageRecord], Any]
    ) -> MessageRecord:
        self._require(message_id)
        async with self._locks[message_id]:
            record = self._records[message_id]
            apply(record)
            return copy.deepcopy(record)

    def _select(
        self,
        user_id: int,
        predicate: Optional[Callable[[MessageRecord], bool]] = None,
        newest_first: bool = True,
    ) -> list[MessageRecord]:
        rows = [
            r for r in self._records.values()
            if r.user_id == user_id
            and not r.deleted
            and (predicate is None or predicate(r))
        ]
        rows.sort(key=lambda r: (r.timestamp, r.id), reverse=newest_first)
        return [copy.deepcopy(r) for r in rows]
