"""
Rate limiting middleware guarding every route.

WHAT: This module provides per-caller rate limiting to protect the
authentication endpoints from brute-force and credential stuffing attacks.

WHY: Rate limiting is essential for:
1. OWASP A07 (Identification and Authentication Failures) - Prevent brute force
2. Slowing down email enumeration and reset-email harassment
3. Fair usage enforcement

HOW: Fixed window counter per caller key:
1. First request (or first request after the window elapsed) starts a new
   window with count 1
2. Every further request in the window increments the counter
3. Requests are allowed while count <= limit (20 per 60 seconds by default)
4. Over the limit, 429 Too Many Requests is returned before any handler runs

Two backends implement the same RateLimiter interface:
- InMemoryRateLimiter: process-local map, reset on restart. Takes an
  injectable clock so tests can move time forward deterministically.
- RedisRateLimiter: shared counter for multi-instance deployments. Fails
  open if Redis is unavailable.
"""

import abc
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis.asyncio as aioredis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth_service.core.config import Settings
from auth_service.core.exceptions import RateLimitExceeded


logger = logging.getLogger(__name__)

UNKNOWN_CALLER = "unknown"


# ============================================================================
# Configuration
# ============================================================================


@dataclass
class RateLimitConfig:
    """
    Configuration for rate limiting.

    WHAT: Defines the limit applied to each caller key.

    WHY: 20 requests per minute lets a real user retype a password a few
    times and click through signup, verification and login, while making
    online guessing impractically slow.
    """

    requests_per_window: int = 20
    """Maximum number of requests allowed in the window."""

    window_seconds: int = 60
    """Duration of the rate limit window in seconds."""

    key_prefix: str = "ratelimit"
    """Redis key prefix for rate limit counters.

    WHY: Namespacing prevents key collisions with other Redis data.
    """


# ============================================================================
# Rate Limit Result
# ============================================================================


@dataclass
class RateLimitResult:
    """
    Verdict for one counted request.

    The three numbers become the X-RateLimit-* headers; `reset_after` is
    also the Retry-After value of a 429.
    """

    allowed: bool
    """Whether the request is allowed (under limit)."""

    remaining: int
    """Number of requests remaining in current window (-1 if unknown)."""

    reset_after: int
    """Seconds until the rate limit window resets (Retry-After)."""

    limit: int
    """Maximum requests allowed per window."""


# ============================================================================
# Rate Limiters
# ============================================================================


class RateLimiter(abc.ABC):
    """
    Abstract per-caller rate limiter.

    WHY: The middleware depends on this interface only, so the app factory
    (or a test) decides which backend is used.
    """

    def __init__(self, config: Optional[RateLimitConfig] = None):
        self._config = config or RateLimitConfig()

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @abc.abstractmethod
    async def check_rate_limit(self, identifier: str) -> RateLimitResult:
        """
        Count one request for a caller and decide whether it may proceed.

        Args:
            identifier: Caller key (first X-Forwarded-For address or "unknown")

        Returns:
            RateLimitResult with allowed status and metadata
        """

    async def allow(self, identifier: str) -> bool:
        """Count one request and return only the verdict."""
        result = await self.check_rate_limit(identifier)
        return result.allowed


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local fixed window rate limiter.

    WHAT: Keeps `identifier -> (count, reset_at)` in a dict.

    WHY: Enough for a single-instance deployment. The map is only touched
    between awaits, so concurrent requests never interleave inside one
    read-modify-write. Entries are never evicted; the map lives as long as
    the process does.

    Args:
        config: Limit and window
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(config)
        self._clock = clock
        self._windows: Dict[str, _Window] = {}

    async def check_rate_limit(self, identifier: str) -> RateLimitResult:
        now = self._clock()
        limit = self._config.requests_per_window
        window = self._windows.get(identifier)

        if window is None or now >= window.reset_at:
            window = _Window(count=1, reset_at=now + self._config.window_seconds)
            self._windows[identifier] = window
        else:
            window.count += 1

        return RateLimitResult(
            allowed=window.count <= limit,
            remaining=max(0, limit - window.count),
            reset_after=max(1, math.ceil(window.reset_at - now)),
            limit=limit,
        )

    def reset(self) -> None:
        """Forget every caller's window."""
        self._windows.clear()


class RedisRateLimiter(RateLimiter):
    """
    Fixed window shared by every instance through Redis.

    One key per caller, `{prefix}:{caller}`, holding the request count and
    expiring when the window ends. Per request, in one pipeline:
    1. INCR key (creates it at 1 when the window is new)
    2. TTL key (seconds left in the window)
    3. EXPIRE key window_seconds, only when the key has no TTL yet, so the
       window is not extended by later requests
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        config: Optional[RateLimitConfig] = None,
    ):
        super().__init__(config)
        self._redis = redis_client

    def _build_key(self, identifier: str) -> str:
        return f"{self._config.key_prefix}:{identifier}"

    async def check_rate_limit(self, identifier: str) -> RateLimitResult:
        key = self._build_key(identifier)
        window_seconds = self._config.window_seconds
        limit = self._config.requests_per_window

        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            current_count, ttl = await pipe.execute()

            # -1 means the key exists without an expiry (first hit, or an
            # earlier EXPIRE was lost)
            if ttl is None or ttl < 0:
                await self._redis.expire(key, window_seconds)
                ttl = window_seconds

            return RateLimitResult(
                allowed=current_count <= limit,
                remaining=max(0, limit - current_count),
                reset_after=max(1, int(ttl)),
                limit=limit,
            )

        except Exception as e:
            # Fail-open: allow request if Redis is unavailable
            # WHY: An outage of the counter store must not lock every user out.
            logger.error(
                f"Rate limit Redis error (allowing request): {e}",
                extra={"identifier": identifier, "error": str(e)},
            )
            return RateLimitResult(
                allowed=True,
                remaining=-1,
                reset_after=window_seconds,
                limit=limit,
            )


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """
    Build the configured rate limiter backend.

    Args:
        settings: Application settings (RATE_LIMIT_BACKEND, RATE_LIMIT_REQUESTS,
            RATE_LIMIT_WINDOW_SECONDS, REDIS_URL)

    Returns:
        RateLimiter instance

    Raises:
        ValueError: If RATE_LIMIT_BACKEND is not "memory" or "redis"
    """
    config = RateLimitConfig(
        requests_per_window=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    backend = settings.RATE_LIMIT_BACKEND.lower()

    if backend == "memory":
        return InMemoryRateLimiter(config)

    if backend == "redis":
        redis_client = aioredis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
        return RedisRateLimiter(redis_client=redis_client, config=config)

    raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {settings.RATE_LIMIT_BACKEND!r}")


def get_caller_key(request: Request) -> str:
    """
    Derive the rate limit key for a request.

    WHAT: First address of X-Forwarded-For, or "unknown" when absent.

    WHY: The service runs behind a proxy that always sets X-Forwarded-For;
    the socket peer would be the proxy itself. Callers without the header
    share one bucket.

    Args:
        request: HTTP request

    Returns:
        Caller key string
    """
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        first = x_forwarded_for.split(",")[0].strip()
        if first:
            return first
    return UNKNOWN_CALLER


# ============================================================================
# Rate Limit Middleware
# ============================================================================


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware applying the rate limit to every request.

    WHAT: Counts each request against its caller key and rejects it with
    429 once the caller is over the limit.

    Unknown routes are counted too, and a rejected request never reaches
    routing, dependencies or the database.

    Usage:
        app.add_middleware(RateLimitMiddleware, limiter=InMemoryRateLimiter())
    """

    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        identifier = get_caller_key(request)
        result = await self.limiter.check_rate_limit(identifier)

        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_after),
        }

        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={
                    "identifier": identifier,
                    "path": request.url.path,
                    "limit": result.limit,
                },
            )
            exc = RateLimitExceeded(retry_after=result.reset_after)
            headers["Retry-After"] = str(result.reset_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers=headers,
            )

        response = await call_next(request)

        # Inform clients of their rate limit status
        response.headers.update(headers)
        return response
