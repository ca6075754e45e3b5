"""
Redis-backed sliding window rate limiter for credential endpoints.

Counts login and registration attempts per client IP over the last minute.
Redis being unreachable never blocks a login: the limiter fails open and
retries the connection on a later request.
"""

import logging
import time

import redis.asyncio as aioredis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from resolveai.config import settings

logger = logging.getLogger(__name__)

LIMITED_PATHS = frozenset({
    "/api/auth/login",
    "/api/auth/register",
    "/api/admin/auth/login",
})

RECONNECT_DELAY = 30.0  # seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, *, limit: int | None = None, window: int = 60):
        super().__init__(app)
        self._redis: aioredis.Redis | None = None
        self._retry_at = 0.0
        self.limit = settings.rate_limit_per_minute if limit is None else limit
        self.window = window

    async def _get_redis(self) -> aioredis.Redis | None:
        if self._redis is None and time.time() >= self._retry_at:
            client = aioredis.from_url(settings.redis_url, decode_responses=True)
            try:
                await client.ping()
                self._redis = client
            except Exception as exc:
                logger.warning("Rate limiter: Redis unavailable (%s), passing through", exc)
                self._retry_at = time.time() + RECONNECT_DELAY
                await client.aclose()
        return self._redis

    async def dispatch(self, request: Request, call_next):
        if self.limit <= 0 or request.method != "POST" or request.url.path not in LIMITED_PATHS:
            return await call_next(request)

        r = await self._get_redis()
        if r is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        key = f"ratelimit:{request.url.path}:{client_ip}"

        try:
            pipe = r.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self.window)
            results = await pipe.execute()
            attempts = results[2]
        except Exception as exc:
            logger.warning("Rate limiter Redis error: %s", exc)
            self._redis = None
            return await call_next(request)

        if attempts > self.limit:
            logger.info("Rate limit hit on %s from %s", request.url.path, client_ip)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many attempts. Please try again later."},
                headers={"Retry-After": str(self.window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.limit - attempts))
        return response
