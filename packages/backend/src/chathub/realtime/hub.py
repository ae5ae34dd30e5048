"""Process-wide hub singletons and their FastAPI dependency.

Learn: There is exactly one registry per process — it owns every socket
this process accepted. Routes and the WebSocket endpoint reach it through
get_router (the router carries its registry), so tests can swap in an
isolated hub with app.dependency_overrides.
"""

from chathub.config import settings
from chathub.realtime.registry import ConnectionRegistry
from chathub.realtime.router import BroadcastRouter

registry = ConnectionRegistry(heartbeat_interval=settings.heartbeat_interval_seconds)
router = BroadcastRouter(registry)


def get_router() -> BroadcastRouter:
    return router
