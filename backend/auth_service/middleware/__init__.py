"""
Middleware package.

WHY: Middleware provides cross-cutting concerns like CORS and rate
limiting that apply to all requests.
"""

from auth_service.middleware.cors import CORSPreflightMiddleware
from auth_service.middleware.rate_limiter import (
    RateLimitMiddleware,
    RateLimiter,
    InMemoryRateLimiter,
    RedisRateLimiter,
    RateLimitConfig,
    RateLimitResult,
    build_rate_limiter,
    get_caller_key,
)

__all__ = [
    # CORS
    "CORSPreflightMiddleware",
    # Rate limiting
    "RateLimitMiddleware",
    "RateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "build_rate_limiter",
    "get_caller_key",
]
