"""
Rate limiting for the API.

Usage:
    limiter = RateLimiter.from_name("fixed_window", InMemoryStorage(), 100, 60)
    app.state.rate_limiter = limiter

    @router.post("/monitoring", dependencies=[Depends(monitoring_rate_limit)])
    async def ingest(...): ...
"""
from .dependencies import get_rate_limiter, monitoring_rate_limit
from .limiter import RateLimiter
from .storage import InMemoryStorage, RateLimiterStorage, RedisStorage
from .strategies import (
    FixedWindowStrategy,
    RateLimitStrategy,
    SlidingWindowStrategy,
    TokenBucketStrategy,
)

__all__ = [
    "RateLimiter",
    "RateLimiterStorage",
    "InMemoryStorage",
    "RedisStorage",
    "RateLimitStrategy",
    "FixedWindowStrategy",
    "SlidingWindowStrategy",
    "TokenBucketStrategy",
    "get_rate_limiter",
    "monitoring_rate_limit",
]
