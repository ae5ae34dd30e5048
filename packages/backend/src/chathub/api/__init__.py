"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Handlers that need the caller's id also declare
get_current_user; FastAPI resolves it once per request either way.
Health is open (no auth required).
"""

from fastapi import APIRouter, Depends

from chathub.api.chat import router as chat_router
from chathub.api.health import router as health_router
from chathub.api.messages import router as messages_router
from chathub.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])

# Protected routes — require a valid JWT
api_router.include_router(messages_router, tags=["messages"], dependencies=_auth)
api_router.include_router(chat_router, tags=["chat"], dependencies=_auth)
