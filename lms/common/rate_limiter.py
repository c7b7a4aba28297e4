"""
Rate Limiter Module

This module provides fixed-window rate limiting for the API. Counters live
in Redis when REDIS_URL is configured, so every instance shares them, and
in process memory otherwise.
"""

import json
import time
from typing import Dict, Iterable, Optional, Tuple

from fastapi import Request, Response, status
from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware

from lms.common.logger import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RateLimiter:
    """
    Fixed-window request counter keyed by client.

    Example:
        limiter = RateLimiter.from_url(settings.REDIS_URL)
        allowed, retry_after = await limiter.check("10.0.0.1", max_requests=300, period=900)
    """

    def __init__(self, redis: Optional[Redis] = None, prefix: str = "rate_limit:"):
        self.redis = redis
        self.prefix = prefix
        self.local_storage: Dict[str, Tuple[int, float]] = {}

    @classmethod
    def from_url(cls, redis_url: Optional[str], prefix: str = "rate_limit:") -> "RateLimiter":
        """Build a limiter backed by Redis when a URL is given."""
        redis = Redis.from_url(redis_url) if redis_url else None
        return cls(redis, prefix)

    async def check(
        self,
        key: str,
        max_requests: int,
        period: int,
        increment: bool = True
    ) -> Tuple[bool, Optional[int]]:
        """
        Count a request for ``key`` and decide whether it may proceed.

        Redis errors are logged and the in-process counters take over.

        Args:
            key: Client identifier, normally the IP address
            max_requests: Requests allowed per window
            period: Window length in seconds
            increment: Count this call, or only inspect the window

        Returns:
            ``(allowed, retry_after)``; ``retry_after`` is None when allowed
        """
        now = time.time()
        storage_key = f"{self.prefix}{key}:{period}"

        if self.redis is not None:
            try:
                count = await self.check_redis(storage_key, period, increment)
                if count > max_requests:
                    return False, max(1, await self.redis.ttl(storage_key))
                return True, None
            except Exception as e:
                logger.error(f"Redis rate limit error, using local counters: {e}")

        return await self.check_local(storage_key, max_requests, period, increment, now)

    async def check_redis(self, key: str, period: int, increment: bool) -> int:
        """Current request count for the key in Redis."""
        if increment:
            current = await self.redis.incr(key)
            if current == 1:
                await self.redis.expire(key, period)
        else:
            current = int(await self.redis.get(key) or 0)

        return current

    async def check_local(
        self,
        key: str,
        max_requests: int,
        period: int,
        increment: bool,
        now: float
    ) -> Tuple[bool, Optional[int]]:
        """Check rate limit using in-process storage."""
        self._clean_expired_local(now)
        count, expire_time = self.local_storage.get(key, (0, now + period))

        if increment:
            count += 1
            self.local_storage[key] = (count, expire_time)

        if count > max_requests:
            return False, max(1, int(expire_time - now))

        return True, None

    def _clean_expired_local(self, now: Optional[float] = None) -> None:
        """Remove expired windows from local storage."""
        now = time.time() if now is None else now
        keys_to_remove = [
            key for key, (_, expire_time) in self.local_storage.items()
            if now > expire_time
        ]
        for key in keys_to_remove:
            del self.local_storage[key]

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply one fixed-window limit per client IP to every API request.

    Paths outside ``path_prefix`` and the exempt paths are not counted.
    """

    def __init__(
        self,
        app,
        limiter: RateLimiter,
        max_requests: int,
        period: int,
        path_prefix: str = "/api/",
        exempt_paths: Iterable[str] = ("/health", "/health/db"),
    ):
        super().__init__(app)
        self.limiter = limiter
        self.max_requests = max_requests
        self.period = period
        self.path_prefix = path_prefix
        self.exempt_paths = set(exempt_paths)

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not path.startswith(self.path_prefix) or path in self.exempt_paths:
            return await call_next(request)

        allowed, reset_time = await self.limiter.check(
            get_client_ip(request), self.max_requests, self.period
        )
        if not allowed:
            logger.warning(f"Rate limit exceeded for {get_client_ip(request)} on {path}")
            headers = {
                "X-RateLimit-Limit": str(self.max_requests),
                "X-RateLimit-Reset": str(reset_time),
                "Retry-After": str(reset_time),
                "Content-Type": "application/json"
            }
            return Response(
                content=json.dumps({"status": "error", "message": RATE_LIMIT_MESSAGE, "error": RATE_LIMIT_MESSAGE}),
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers=headers
            )

        return await call_next(request)
