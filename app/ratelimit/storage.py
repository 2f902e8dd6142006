"""
Storage backends for rate limiter state.

Strategies keep small JSON-compatible values (counters, timestamp lists,
token buckets) under string keys with a TTL. Two backends are provided:
an in-process dictionary for single-worker deployments and tests, and
Redis for deployments where several instances must share one quota.
"""
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Optional, Dict
import json
import logging
import threading
import time

logger = logging.getLogger(__name__)


class RateLimiterStorage(ABC):
    """
    Abstract storage interface for rate limiter state.

    Implementations must be safe to share between concurrent requests.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Get value for a key.

        Returns:
            Stored value or None if missing or expired
        """

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value for a key with optional TTL in seconds.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all stored rate limit data."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryStorage(RateLimiterStorage):
    """
    In-memory storage backend.

    Entries carry an absolute expiry timestamp and are purged lazily on read
    and periodically in bulk. ``max_keys`` bounds memory: once reached, the
    least recently written key is evicted.

    Note: Data is lost on process restart and is not shared between workers.
    """

    def __init__(self, cleanup_interval: int = 60, max_keys: int = 100_000):
        """
        Args:
            cleanup_interval: Seconds between bulk sweeps of expired entries
            max_keys: Upper bound on stored keys
        """
        self._data: "OrderedDict[str, Any]" = OrderedDict()
        self._expiry: Dict[str, float] = {}
        self._lock = threading.RLock()
        self._cleanup_interval = cleanup_interval
        self._max_keys = max_keys
        self._last_cleanup = time.time()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            self._maybe_cleanup()

            if key not in self._data:
                return None

            expires_at = self._expiry.get(key)
            if expires_at is not None and time.time() > expires_at:
                self._remove(key)
                return None

            return self._data[key]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        with self._lock:
            if key in self._data:
                self._data.move_to_end(key)
            elif len(self._data) >= self._max_keys:
                oldest, _ = self._data.popitem(last=False)
                self._expiry.pop(oldest, None)

            self._data[key] = value

            if ttl is not None:
                self._expiry[key] = time.time() + ttl
            else:
                self._expiry.pop(key, None)

    def delete(self, key: str) -> None:
        with self._lock:
            self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._expiry.clear()

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)
        self._expiry.pop(key, None)

    def _maybe_cleanup(self) -> None:
        """Sweep expired entries if the cleanup interval has passed."""
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = now
        expired = [key for key, expires_at in self._expiry.items() if now > expires_at]
        for key in expired:
            self._remove(key)

    def get_stats(self) -> dict:
        """
        Get storage statistics (for monitoring/debugging).

        Returns:
            Dict with keys: total_keys, expired_keys, active_keys, max_keys
        """
        with self._lock:
            now = time.time()
            expired_count = sum(1 for expires_at in self._expiry.values() if now > expires_at)
            return {
                "total_keys": len(self._data),
                "expired_keys": expired_count,
                "active_keys": len(self._data) - expired_count,
                "max_keys": self._max_keys,
            }


class RedisStorage(RateLimiterStorage):
    """
    Redis storage backend for rate limiting.

    Values are JSON-encoded under a namespaced key. Redis errors are logged
    and treated as a miss so that a Redis outage degrades to "allow" rather
    than failing every request. Requires the ``redis`` extra.
    """

    KEY_PREFIX = "ratelimit:"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: Optional[str] = None,
        connection_pool_size: int = 10,
        socket_timeout: float = 5.0,
    ):
        import redis  # type: ignore[import-untyped]

        self._redis_module = redis
        self._key_prefix = key_prefix or self.KEY_PREFIX
        self._pool = redis.ConnectionPool.from_url(
            redis_url,
            max_connections=connection_pool_size,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        self._redis = redis.Redis(connection_pool=self._pool)

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self._redis.get(self._make_key(key))
        except self._redis_module.RedisError as e:
            logger.error(f"Redis error during get({key}): {e}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            logger.error(f"JSON decode error during get({key}): {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            serialized = json.dumps(value)
            if ttl is not None and ttl > 0:
                self._redis.setex(self._make_key(key), ttl, serialized)
            else:
                self._redis.set(self._make_key(key), serialized)
        except self._redis_module.RedisError as e:
            logger.error(f"Redis error during set({key}): {e}")

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(self._make_key(key))
        except self._redis_module.RedisError as e:
            logger.error(f"Redis error during delete({key}): {e}")

    def clear(self) -> None:
        """Delete only keys under this backend's prefix."""
        try:
            for key in self._redis.scan_iter(match=f"{self._key_prefix}*", count=100):
                self._redis.delete(key)
        except self._redis_module.RedisError as e:
            logger.error(f"Redis error during clear(): {e}")

    def is_connected(self) -> bool:
        try:
            return bool(self._redis.ping())
        except self._redis_module.RedisError:
            return False

    def close(self) -> None:
        self._pool.disconnect()
