"""Message service — store mutations glued to real-time broadcasts.

Learn: Every mutating operation follows the same state machine:

    validate → check ownership → mutate store → broadcast → return

1. Store errors (not found, invalid input) propagate to the route and no
   broadcast happens.
2. The broadcast only runs after the store call returned, i.e. after the
   change is committed — storage truth always precedes notification.
3. Broadcast failures are logged and swallowed. They never undo or fail
   a committed mutation.

Ownership: a user can only touch their own messages. Someone else's
message id raises MessageNotFoundError, indistinguishable from a missing
one, so ids don't leak across users. Soft-deleted messages behave as
missing for everything except delete (idempotent) and restore.
"""

from datetime import datetime
from typing import Any, Optional

import structlog

from chathub.errors import MessageNotFoundError
from chathub.realtime.router import BroadcastRouter
from chathub.store.base import MessageStore

logger = structlog.get_logger()


class MessageService:
    """Business logic for message CRUD with live fan-out."""

    def __init__(self, store: MessageStore, router: BroadcastRouter):
        self.store = store
        self.router = router

    # ─── Create ──────────────────────────────────────────

    async def create(
        self,
        user_id: int,
        content: str,
        role: str = "user",
        content_type: str = "text",
        tags: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Any:
        msg = await self.store.create(
            user_id=user_id,
            content=content,
            role=role,
            content_type=content_type,
            tags=tags,
            metadata=metadata,
        )
        await self._broadcast_update(msg)
        return msg

    # ─── Read ────────────────────────────────────────────

    async def get(self, user_id: int, message_id: int) -> Any:
        """Read one message. Soft-deleted messages read as missing."""
        return await self._owned(user_id, message_id)

    async def history(self, user_id: int) -> list[Any]:
        return await self.store.list_for_user(user_id)

    async def search(self, user_id: int, query: str) -> list[Any]:
        return await self.store.search(user_id, query)

    async def by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Any]:
        return await self.store.by_date_range(user_id, start, end)

    async def by_tags(self, user_id: int, tags: list[str]) -> list[Any]:
        return await self.store.by_tags(user_id, tags)

    async def favorites(self, user_id: int) -> list[Any]:
        return await self.store.favorites_of(user_id)

    # ─── Mutations ───────────────────────────────────────

    async def edit(self, user_id: int, message_id: int, content: str) -> Any:
        await self._owned(user_id, message_id)
        msg = await self.store.edit(message_id, content)
        await self._broadcast_update(msg)
        return msg

    async def delete(self, user_id: int, message_id: int) -> Any:
        """Soft-delete. Broadcasts messageDelete even if already deleted."""
        await self._owned(user_id, message_id, include_deleted=True)
        msg = await self.store.soft_delete(message_id)
        await self._broadcast(
            self.router.notify_message_delete(msg.user_id, msg.id), msg.id
        )
        return msg

    async def restore(self, user_id: int, message_id: int) -> Any:
        await self._owned(user_id, message_id, include_deleted=True)
        msg = await self.store.restore(message_id)
        await self._broadcast_update(msg)
        return msg

    async def toggle_favorite(self, user_id: int, message_id: int) -> Any:
        await self._owned(user_id, message_id)
        msg = await self.store.toggle_favorite(message_id)
        await self._broadcast_update(msg)
        return msg

    async def add_reaction(self, user_id: int, message_id: int, kind: str) -> Any:
        await self._owned(user_id, message_id)
        msg = await self.store.add_reaction(message_id, user_id, kind)
        await self._broadcast_update(msg)
        return msg

    async def remove_reaction(self, user_id: int, message_id: int, kind: str) -> Any:
        await self._owned(user_id, message_id)
        msg = await self.store.remove_reaction(message_id, user_id, kind)
        await self._broadcast_update(msg)
        return msg

    # ─── Internals ───────────────────────────────────────

    async def _owned(
        self, user_id: int, message_id: int, include_deleted: bool = False
    ) -> Any:
        msg = await self.store.get(message_id)
        if msg.user_id != user_id or (msg.deleted and not include_deleted):
            raise MessageNotFoundError(message_id)
        return msg

    async def _broadcast_update(self, msg: Any) -> None:
        await self._broadcast(self.router.notify_message_update(msg), msg.id)

    async def _broadcast(self, delivery, message_id: int) -> None:
        """Await a router call; log and absorb anything it raises."""
        try:
            await delivery
        except Exception:
            logger.exception("message.broadcast_failed", message_id=message_id)
