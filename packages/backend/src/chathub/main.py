"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: Redis for rate limiting,
tables for the postgres backend, and the liveness sweeper that evicts dead
push connections. Middleware, CORS, and routers are all registered here.
"""

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chathub import __version__
from chathub.api import api_router
from chathub.config import settings

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    logger.info(
        "chathub.starting",
        version=__version__,
        environment=settings.environment,
        store=settings.store_backend,
        port=settings.port,
    )

    from chathub.cache import close_redis, init_redis
    try:
        await init_redis()
        logger.info("chathub.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("chathub.redis_unavailable", error=str(e))
        # Redis is optional — only rate limiting is lost without it

    if settings.store_backend == "postgres":
        from chathub.db.engine import init_models
        await init_models()
        logger.info("chathub.tables_ready")

    # Liveness sweeper for the push channel
    from chathub.realtime.hub import registry
    sweep_task = asyncio.create_task(registry.run_sweeps())

    yield

    logger.info("chathub.shutdown", connections=registry.connection_count)

    registry.stop()
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass

    await close_redis()

    from chathub.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="chathub",
        description="Real-time chat message hub — per-user WebSocket fan-out",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from chathub.middleware.rate_limit import RateLimitMiddleware
    from chathub.middleware.request_id import RequestIdMiddleware
    from chathub.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        chat_rpm=settings.rate_limit_chat_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    # Push channel
    from chathub.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: chathub.main:app)
app = create_app()
