"""PostgreSQL message store — the durable backend.

Learn: Mutations load the row with SELECT ... FOR UPDATE, so concurrent
writers to the SAME message queue up on the row lock while writers to
other messages proceed. The mutation itself is the shared rule from
chathub.store.mutations, then the transaction commits. The committed row
is returned and becomes the broadcast payload.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from chathub.db.models import Message
from chathub.errors import MessageNotFoundError
from chathub.store import mutations
from chathub.store.base import MessageStore


class PostgresMessageStore(MessageStore):
    """Message store backed by the messages table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Create / read ───────────────────────────────────

    async def create(
        self,
        user_id: int,
        content: str,
        role: str = "user",
        content_type: str = "text",
        tags: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Message:
        mutations.validate_new_message(content, role, content_type)
        msg = Message(
            user_id=user_id,
            role=role,
            content=content,
            content_type=content_type,
            tags=mutations.normalize_tags(tags),
            meta=dict(metadata or {}),
            timestamp=mutations.utcnow(),
            edited=False,
            edit_history=[],
            deleted=False,
            favorite=False,
            reactions={"count": 0, "users": []},
        )
        self.db.add(msg)
        await self.db.commit()
        return msg

    async def get(self, message_id: int) -> Message:
        msg = await self.db.get(Message, message_id)
        if msg is None:
            raise MessageNotFoundError(message_id)
        return msg

    # ─── Mutations ───────────────────────────────────────

    async def edit(self, message_id: int, new_content: str) -> Message:
        return await self._mutate(
            message_id,
            lambda m: mutations.apply_edit(m, new_content),
            "edit_history",
        )

    async def soft_delete(self, message_id: int) -> Message:
        return await self._mutate(message_id, mutations.apply_soft_delete)

    async def restore(self, message_id: int) -> Message:
        return await self._mutate(message_id, mutations.apply_restore)

    async def toggle_favorite(self, message_id: int) -> Message:
        return await self._mutate(message_id, mutations.apply_toggle_favorite)

    async def add_reaction(self, message_id: int, user_id: int, kind: str) -> Message:
        mutations.validate_reaction_kind(kind)
        return await self._mutate(
            message_id,
            lambda m: mutations.apply_add_reaction(m, user_id),
            "reactions",
        )

    async def remove_reaction(
        self, message_id: int, user_id: int, kind: str
    ) -> Message:
        mutations.validate_reaction_kind(kind)
        return await self._mutate(
            message_id,
            lambda m: mutations.apply_remove_reaction(m, user_id),
            "reactions",
        )

    # ─── Queries ─────────────────────────────────────────

    async def list_for_user(self, user_id: int) -> list[Message]:
        query = (
            select(Message)
            .where(Message.user_id == user_id, Message.deleted.is_(False))
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def search(self, user_id: int, query: str) -> list[Message]:
        return await self._select(
            user_id, Message.content.icontains(query, autoescape=True)
        )

    async def by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Message]:
        return await self._select(
            user_id, Message.timestamp >= start, Message.timestamp <= end
        )

    async def by_tags(self, user_id: int, tags: list[str]) -> list[Message]:
        if not tags:
            return []
        return await self._select(user_id, Message.tags.overlap(tags))

    async def favorites_of(self, user_id: int) -> list[Message]:
        return await self._select(user_id, Message.favorite.is_(True))

    # ─── Internals ───────────────────────────────────────

    async def _mutate(
        self,
        message_id: int,
        apply: Callable[[Message], Any],
        *json_fields: str,
    ) -> Message:
        # populate_existing: the row may already sit in the identity map from
        # an earlier read; the locked values must replace it
        result = await self.db.execute(
            select(Message)
            .where(Message.id == message_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        msg = result.scalars().first()
        if msg is None:
            await self.db.rollback()
            raise MessageNotFoundError(message_id)

        try:
            apply(msg)
        except Exception:
            await self.db.rollback()
            raise
        for name in json_fields:
            flag_modified(msg, name)

        await self.db.commit()
        return msg

    async def _select(self, user_id: int, *criteria) -> list[Message]:
        query = (
            select(Message)
            .where(Message.user_id == user_id, Message.deleted.is_(False), *criteria)
            .order_by(Message.timestamp.desc(), Message.id.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
