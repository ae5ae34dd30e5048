"""Connection registry — who is connected, and are they still there.

Learn: The registry is the single owner of the user → connections map.
Each user's connections live in a bucket with its own asyncio.Lock, so
connect/disconnect/eviction for one user never waits on another user.
A bucket is retired as soon as its set empties; anyone who was waiting on a
retired bucket's lock notices and retries on the fresh one.

Liveness is an explicit two-state machine per connection:

    ALIVE ──(sweep sends probe)──▶ AWAITING_PONG ──(pong/ping)──▶ ALIVE
                                         │
                                   (next sweep)
                                         ▼
                                      evicted

So a peer that stops answering is closed on the second sweep after its
last sign of life. Unauthenticated connections are swept too — they're
tracked from the moment the socket is accepted.
"""

import asyncio
import enum
import uuid
from typing import Any, Optional

import structlog

from chathub.errors import DeliveryError
from chathub.events.types import PING
from chathub.realtime.protocol import encode_event

logger = structlog.get_logger()

PROBE_FRAME = encode_event(PING, {})


class Liveness(enum.Enum):
    ALIVE = "alive"
    AWAITING_PONG = "awaiting_pong"


class Connection:
    """One accepted push channel.

    `socket` is anything with async send_text(str) and close(code=...) —
    a FastAPI WebSocket in production, a fake in tests.
    """

    def __init__(self, socket: Any):
        self.socket = socket
        self.id = uuid.uuid4().hex[:12]
        self.user_id: Optional[int] = None
        self.liveness = Liveness.ALIVE
        self.closed = False
        self._send_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id} {self.liveness.value}>"

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    def mark_alive(self) -> None:
        self.liveness = Liveness.ALIVE

    def begin_probe(self) -> None:
        self.liveness = Liveness.AWAITING_PONG

    async def send(self, frame: str) -> None:
        """Write one frame. Raises DeliveryError on any failure."""
        if self.closed:
            raise DeliveryError(f"connection {self.id} is closed")
        async with self._send_lock:
            try:
                await self.socket.send_text(frame)
            except Exception as e:
                raise DeliveryError(f"send to {self.id} failed: {e}") from e

    async def close(self, code: int = 1000) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.socket.close(code=code)
        except Exception:
            # Peer already gone
            logger.debug("connection.close_failed", connection_id=self.id, exc_info=True)


class _Bucket:
    """One user's live connections plus the lock guarding them."""

    __slots__ = ("lock", "connections")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.connections: set[Connection] = set()


class ConnectionRegistry:
    """Tracks every live connection and evicts unresponsive ones."""

    def __init__(self, heartbeat_interval: float = 30.0):
        self.heartbeat_interval = heartbeat_interval
        self._buckets: dict[int, _Bucket] = {}
        self._tracked: set[Connection] = set()
        self._running = False

    # ─── Membership ──────────────────────────────────────

    def attach(self, conn: Connection) -> None:
        """Track a freshly accepted (still unauthenticated) connection."""
        self._tracked.add(conn)

    async def register(self, conn: Connection, user_id: int) -> None:
        """Bind `conn` to `user_id`. Re-auth moves it to the new user."""
        previous = conn.user_id
        if previous is not None and previous != user_id:
            await self._discard(conn, previous)

        while True:
            bucket = self._buckets.setdefault(user_id, _Bucket())
            async with bucket.lock:
                if self._buckets.get(user_id) is not bucket:
                    continue  # retired while we waited
                if conn.closed:
                    if not bucket.connections:
                        del self._buckets[user_id]
                    return
                bucket.connections.add(conn)
                conn.user_id = user_id
                self._tracked.add(conn)
                break

        logger.info(
            "registry.registered",
            connection_id=conn.id,
            user_id=user_id,
            user_connections=len(bucket.connections),
        )

    async def unregister(self, conn: Connection) -> None:
        """Forget `conn`. Safe to call any number of times."""
        self._tracked.discard(conn)
        if conn.user_id is not None:
            await self._discard(conn, conn.user_id)

    async def evict(self, conn: Connection, reason: str) -> None:
        """Unregister and force-close a connection."""
        if conn.closed and conn not in self._tracked:
            return
        await self.unregister(conn)
        await conn.close(code=1001)
        logger.warning(
            "registry.evicted",
            connection_id=conn.id,
            user_id=conn.user_id,
            reason=reason,
        )

    async def connections_for(self, user_id: int) -> tuple[Connection, ...]:
        """Snapshot of a user's live connections (empty if none)."""
        bucket = self._buckets.get(user_id)
        if bucket is None:
            return ()
        async with bucket.lock:
            return tuple(bucket.connections)

    async def _discard(self, conn: Connection, user_id: int) -> None:
        bucket = self._buckets.get(user_id)
        if bucket is None:
            return
        async with bucket.lock:
            bucket.connections.discard(conn)
            if not bucket.connections and self._buckets.get(user_id) is bucket:
                del self._buckets[user_id]

    # ─── Introspection ───────────────────────────────────

    @property
    def user_count(self) -> int:
        return len(self._buckets)

    @property
    def connection_count(self) -> int:
        return len(self._tracked)

    def has_user(self, user_id: int) -> bool:
        return user_id in self._buckets

    # ─── Liveness ────────────────────────────────────────

    async def sweep(self) -> int:
        """Run one liveness cycle. Returns the number of evictions."""
        snapshot = list(self._tracked)
        stale = [c for c in snapshot if c.liveness is Liveness.AWAITING_PONG]
        fresh = [c for c in snapshot if c.liveness is Liveness.ALIVE]

        for conn in stale:
            await self.evict(conn, reason="liveness_timeout")

        probe_failures = await asyncio.gather(*(self._probe(c) for c in fresh))
        evicted = len(stale) + sum(probe_failures)
        if evicted:
            logger.info(
                "registry.sweep_completed",
                evicted=evicted,
                remaining=len(self._tracked),
            )
        return evicted

    async def _probe(self, conn: Connection) -> bool:
        """Send a liveness probe. Returns True if the connection was evicted."""
        conn.begin_probe()
        try:
            await conn.send(PROBE_FRAME)
        except DeliveryError:
            await self.evict(conn, reason="probe_failed")
            return True
        return False

    async def run_sweeps(self) -> None:
        """Sweep forever at the heartbeat interval (lifespan background task)."""
        self._running = True
        logger.info("registry.sweeper_started", interval=self.heartbeat_interval)

        while self._running:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("registry.sweep_error")

    def stop(self) -> None:
        """Signal the sweep loop to stop."""
        self._running = False
        logger.info("registry.sweeper_stopping")
