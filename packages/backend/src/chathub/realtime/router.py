"""Broadcast router — one event, every live connection of one user.

Learn: Delivery is best-effort and at-most-once. If the user has no live
connections the event is simply dropped (no queue, no replay): a client
that reconnects re-fetches state over REST. A failed write to one
connection is logged, evicts that connection, and never reaches the
caller — the mutation that triggered the broadcast is already committed.

Ordering: publish() returns only after every target has been written, so
sequential publishes for a user arrive at each connection in call order.
"""

import asyncio
from typing import Any, Optional

import structlog

from chathub.errors import DeliveryError
from chathub.events.types import MESSAGE_DELETE, MESSAGE_UPDATE, TYPING
from chathub.realtime.protocol import encode_event
from chathub.realtime.registry import Connection, ConnectionRegistry
from chathub.schemas.message import to_wire

logger = structlog.get_logger()


class BroadcastRouter:
    """Fans events out to a user's connections via the registry."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def publish(
        self,
        user_id: int,
        event: str,
        payload: Any,
        exclude: Optional[Connection] = None,
    ) -> int:
        """Deliver one event. Returns the number of successful writes."""
        connections = await self.registry.connections_for(user_id)
        targets = [c for c in connections if c is not exclude]
        if not targets:
            return 0

        frame = encode_event(event, payload)  # serialize once
        results = await asyncio.gather(*(self._deliver(c, frame) for c in targets))
        return sum(results)

    async def _deliver(self, conn: Connection, frame: str) -> bool:
        try:
            await conn.send(frame)
            return True
        except DeliveryError as e:
            logger.warning(
                "router.delivery_failed",
                connection_id=conn.id,
                user_id=conn.user_id,
                error=str(e),
            )
            await self.registry.evict(conn, reason="delivery_failed")
            return False

    # ─── Typed helpers ───────────────────────────────────

    async def notify_message_update(self, message: Any) -> int:
        return await self.publish(message.user_id, MESSAGE_UPDATE, to_wire(message))

    async def notify_message_delete(self, user_id: int, message_id: int) -> int:
        return await self.publish(user_id, MESSAGE_DELETE, {"id": message_id})

    async def notify_typing(
        self,
        user_id: int,
        is_typing: bool,
        exclude: Optional[Connection] = None,
    ) -> int:
        return await self.publish(
            user_id,
            TYPING,
            {"userId": user_id, "isTyping": is_typing},
            exclude=exclude,
        )
