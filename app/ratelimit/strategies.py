"""
Rate limiting algorithms.

Each strategy answers one question: may ``identifier`` make another request
given ``limit`` requests per ``window`` seconds? The answer is a tuple of
``(allowed, metadata)`` where metadata carries the values used for the
``X-RateLimit-*`` and ``Retry-After`` headers:

- ``limit``: the quota
- ``remaining``: requests left in the current window
- ``reset_at``: Unix timestamp at which the quota is fully restored
- ``retry_after``: seconds to wait before retrying (0 when allowed)
"""
import math
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Tuple

from .storage import RateLimiterStorage

RateLimitResult = Tuple[bool, Dict[str, Any]]


class RateLimitStrategy(ABC):
    """Base class for rate limiting algorithms over a storage backend."""

    key_prefix = "rl"

    def __init__(
        self,
        storage: RateLimiterStorage,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self._clock = clock
        # Serializes read-modify-write on the storage within this process
        self._lock = threading.Lock()

    def _key(self, identifier: str) -> str:
        return f"{self.key_prefix}:{identifier}"

    @abstractmethod
    def check(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        """Consume one request for ``identifier`` if the quota allows it."""

    def reset(self, identifier: str) -> None:
        """Forget all state for ``identifier``."""
        self.storage.delete(self._key(identifier))


class FixedWindowStrategy(RateLimitStrategy):
    """
    Counts requests in consecutive, non-overlapping windows.

    The window is aligned to the first request from an identifier and lasts
    ``window`` seconds; the counter resets when it elapses.
    """

    key_prefix = "rl:fixed"

    def check(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        key = self._key(identifier)
        with self._lock:
            now = self._clock()
            state = self.storage.get(key)
            if state is None or now >= state["window_start"] + window:
                state = {"window_start": now, "count": 0}

            reset_at = state["window_start"] + window
            allowed = state["count"] < limit
            if allowed:
                state["count"] += 1
                self.storage.set(key, state, ttl=max(1, math.ceil(reset_at - now)))

        remaining = max(0, limit - state["count"])
        return allowed, {
            "limit": limit,
            "remaining": remaining,
            "reset_at": int(math.ceil(reset_at)),
            "retry_after": 0 if allowed else max(1, math.ceil(reset_at - now)),
        }


class SlidingWindowStrategy(RateLimitStrategy):
    """
    Keeps the timestamps of accepted requests inside the trailing window.

    Exact, at the cost of storing up to ``limit`` timestamps per identifier.
    """

    key_prefix = "rl:sliding"

    def check(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        key = self._key(identifier)
        with self._lock:
            now = self._clock()
            timestamps = [
                ts for ts in (self.storage.get(key) or []) if ts > now - window
            ]
            allowed = len(timestamps) < limit
            if allowed:
                timestamps.append(now)
            self.storage.set(key, timestamps, ttl=window)

        oldest = timestamps[0] if timestamps else now
        reset_at = oldest + window
        return allowed, {
            "limit": limit,
            "remaining": max(0, limit - len(timestamps)),
            "reset_at": int(math.ceil(reset_at)),
            "retry_after": 0 if allowed else max(1, math.ceil(reset_at - now)),
        }


class TokenBucketStrategy(RateLimitStrategy):
    """
    Bucket of ``limit`` tokens refilled continuously at ``limit / window``
    tokens per second. Allows short bursts up to the bucket size.
    """

    key_prefix = "rl:bucket"

    def check(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        key = self._key(identifier)
        refill_rate = limit / window
        with self._lock:
            now = self._clock()
            state = self.storage.get(key) or {"tokens": float(limit), "updated_at": now}
            elapsed = max(0.0, now - state["updated_at"])
            tokens = min(float(limit), state["tokens"] + elapsed * refill_rate)

            allowed = tokens >= 1.0
            if allowed:
                tokens -= 1.0
            self.storage.set(key, {"tokens": tokens, "updated_at": now}, ttl=window)

        seconds_to_full = (limit - tokens) / refill_rate
        return allowed, {
            "limit": limit,
            "remaining": int(tokens),
            "reset_at": int(math.ceil(now + seconds_to_full)),
            "retry_after": 0
            if allowed
            else max(1, math.ceil((1.0 - tokens) / refill_rate)),
        }


STRATEGIES: Dict[str, type] = {
    "fixed_window": FixedWindowStrategy,
    "sliding_window": SlidingWindowStrategy,
    "token_bucket": TokenBucketStrategy,
}
