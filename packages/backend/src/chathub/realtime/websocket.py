"""WebSocket endpoint — the per-user push channel.

Learn: Clients connect to /ws and must send an auth frame first:
    {"event": "auth", "userId": 7, "token": "<JWT>"}
Until then the connection is inert: it is swept for liveness but receives
nothing and its typing frames are ignored.

Authentication: the token must verify and its subject must equal userId.
In development mode a token-less auth frame is accepted as-is.

One handler task per connection reads frames in order; broadcasts are
written by whichever request triggered them, through the router.
"""

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from chathub.auth.jwt import TokenError, verify_token
from chathub.config import settings
from chathub.errors import DeliveryError
from chathub.events.types import PONG
from chathub.realtime.hub import get_router
from chathub.realtime.protocol import (
    AuthEvent,
    PingEvent,
    PongEvent,
    TypingEvent,
    decode_inbound,
    encode_event,
)
from chathub.realtime.registry import Connection
from chathub.realtime.router import BroadcastRouter

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def push_channel(
    websocket: WebSocket,
    hub: BroadcastRouter = Depends(get_router),
):
    """Accept a push connection and serve its inbound frames until close."""
    await websocket.accept()
    registry = hub.registry
    conn = Connection(websocket)
    registry.attach(conn)
    log = logger.bind(connection_id=conn.id)
    log.debug("ws.connected")

    try:
        while not conn.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text") or message.get("bytes") or ""
            await _handle_frame(raw, conn, hub, log)
    except WebSocketDisconnect:
        pass
    finally:
        await registry.unregister(conn)
        if websocket.client_state == WebSocketState.CONNECTED and not conn.closed:
            await conn.close()
        conn.closed = True
        log.debug("ws.disconnected", user_id=conn.user_id)


async def _handle_frame(raw, conn: Connection, hub: BroadcastRouter, log) -> None:
    event = decode_inbound(raw)

    if isinstance(event, AuthEvent):
        if _authorize(event, log):
            await hub.registry.register(conn, event.user_id)
            conn.mark_alive()

    elif isinstance(event, TypingEvent):
        if conn.authenticated:
            await hub.notify_typing(conn.user_id, event.is_typing, exclude=conn)

    elif isinstance(event, PongEvent):
        conn.mark_alive()

    elif isinstance(event, PingEvent):
        conn.mark_alive()
        try:
            await conn.send(encode_event(PONG, {}))
        except DeliveryError:
            log.debug("ws.pong_failed")

    else:
        log.debug("ws.frame_dropped", raw=event.raw)


def _authorize(event: AuthEvent, log) -> bool:
    """Check an auth frame's token against its claimed user id."""
    if not event.token:
        if settings.environment == "development":
            return True
        log.warning("ws.auth_rejected", user_id=event.user_id, reason="token required")
        return False

    try:
        payload = verify_token(event.token)
    except TokenError as e:
        log.warning("ws.auth_rejected", user_id=event.user_id, reason=str(e))
        return False

    if payload.get("sub") != str(event.user_id):
        log.warning("ws.auth_rejected", user_id=event.user_id, reason="subject mismatch")
        return False
    return True
