"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running, that the
configured dependencies are reachable, and reports how many users and
sockets the push hub is currently serving.
"""

from fastapi import APIRouter
from sqlalchemy import text

from chathub import __version__
from chathub.config import settings
from chathub.db.engine import engine
from chathub.realtime import hub

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__, "store": settings.store_backend}

    # Postgres only matters when it backs the store
    if settings.store_backend == "postgres":
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["postgres"] = "ok"
        except Exception as e:
            checks["postgres"] = f"error: {e}"

    # Redis (rate limiting)
    try:
        from redis.asyncio import from_url

        r = from_url(settings.redis_url)
        await r.ping()
        await r.aclose()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k in ("server", "postgres", "redis")
    ) else "degraded"

    return {
        "status": status,
        **checks,
        "hub": {
            "users": hub.registry.user_count,
            "connections": hub.registry.connection_count,
        },
    }
