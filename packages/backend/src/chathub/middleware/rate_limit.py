"""Rate limiting middleware — Redis fixed-window counters.

Learn: One counter per client IP per minute, stored in Redis under
"chathub:rl:{ip}:{bucket}:{minute}". POST /api/v1/chat gets its own,
stricter bucket because every call costs a completion request.

Skips rate limiting entirely if Redis is unavailable (e.g., in tests or
a laptop without Redis).
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()

CHAT_PATH = "/api/v1/chat"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request budget per minute."""

    def __init__(self, app, default_rpm: int = 100, chat_rpm: int = 20):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.chat_rpm = chat_rpm

    def bucket_for(self, request: Request) -> tuple[str, int]:
        if request.method == "POST" and request.url.path.rstrip("/") == CHAT_PATH:
            return "chat", self.chat_rpm
        return "api", self.default_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            from chathub.cache import get_redis

            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket, rpm = self.bucket_for(request)
        window = int(time.time() // 60)
        key = f"chathub:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
