"""Test fixtures — isolated stores and hubs per test, no external services.

Learn: Testing pattern for the hub:

1. Each test gets a fresh InMemoryMessageStore and a fresh
   ConnectionRegistry + BroadcastRouter (function-scoped), so nothing
   leaks between tests and no PostgreSQL or Redis is needed.
2. The API client overrides the store, hub, identity and completion
   dependencies via app.dependency_overrides.
3. FakeSocket stands in for a WebSocket: it records every frame written
   to it and can be told to fail, which is how delivery failures and
   evictions are tested without a network.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from chathub.completion.base import CompletionProvider
from chathub.errors import GenerationError
from chathub.realtime.registry import Connection, ConnectionRegistry
from chathub.realtime.router import BroadcastRouter
from chathub.store.memory import InMemoryMessageStore


# ═══════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════


class FakeSocket:
    """Records frames sent to it. Set `fail = True` to break sends."""

    def __init__(self):
        self.frames: list[dict] = []
        self.fail = False
        self.close_code = None

    async def send_text(self, frame: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.frames.append(json.loads(frame))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    def events(self, name: str) -> list[dict]:
        return [f["data"] for f in self.frames if f["event"] == name]


class FakeProvider(CompletionProvider):
    """Scripted completion provider."""

    def __init__(self, reply: str = "Hello from the assistant", fail: bool = False):
        self.reply = reply
        self.fail = fail
        self.calls: list[list[dict]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def complete(self, turns):
        self.calls.append(list(turns))
        if self.fail:
            raise GenerationError("provider down")
        return self.reply


# ═══════════════════════════════════════════════════════════
# Hub fixtures
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def registry():
    return ConnectionRegistry(heartbeat_interval=0.01)


@pytest.fixture
def hub(registry):
    return BroadcastRouter(registry)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def connect(registry):
    """Factory: open a fake connection, optionally authenticated as a user."""

    async def _connect(user_id=None):
        socket = FakeSocket()
        conn = Connection(socket)
        registry.attach(conn)
        if user_id is not None:
            await registry.register(conn, user_id)
        return conn, socket

    return _connect


# ═══════════════════════════════════════════════════════════
# API clients
# ═══════════════════════════════════════════════════════════


def _override_hub(app, store, hub, provider):
    from chathub.completion import get_completion_provider
    from chathub.realtime.hub import get_router
    from chathub.store import get_message_store

    app.dependency_overrides[get_message_store] = lambda: store
    app.dependency_overrides[get_router] = lambda: hub
    app.dependency_overrides[get_completion_provider] = lambda: provider


@pytest_asyncio.fixture()
async def client(store, hub, provider):
    """HTTP client acting as user 1.

    Learn: get_current_user is overridden with a fixed identity so tests
    exercise routes, not JWT handling (test_auth covers that).
    """
    from chathub.auth.dependencies import CurrentIdentity, get_current_user
    from chathub.main import app

    _override_hub(app, store, hub, provider)
    app.dependency_overrides[get_current_user] = lambda: CurrentIdentity(
        user_id=1, email="user1@example.com"
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(store, hub, provider):
    """HTTP client WITHOUT the identity override — real bearer-token auth."""
    from chathub.main import app

    _override_hub(app, store, hub, provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
