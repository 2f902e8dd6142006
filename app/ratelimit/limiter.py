"""
Rate limiter facade.

A ``RateLimiter`` owns a strategy and its storage, and is created once per
application in ``create_application()``. Handlers receive it through the
``get_rate_limiter`` dependency rather than reaching for a module global.
"""
import logging
from typing import Optional

from .storage import InMemoryStorage, RateLimiterStorage
from .strategies import STRATEGIES, FixedWindowStrategy, RateLimitResult, RateLimitStrategy

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Check request quotas per identifier.

    Example:
        limiter = RateLimiter(default_limit=100, default_window=60)
        allowed, metadata = limiter.check("ip:203.0.113.7")
    """

    def __init__(
        self,
        strategy: Optional[RateLimitStrategy] = None,
        storage: Optional[RateLimiterStorage] = None,
        default_limit: int = 100,
        default_window: int = 60,
    ):
        """
        Args:
            strategy: Algorithm to apply. Defaults to a fixed window over ``storage``.
            storage: Backend for the default strategy. Ignored when ``strategy``
                is given. Defaults to a fresh ``InMemoryStorage``.
            default_limit: Requests allowed per window when ``check`` is not
                given an explicit limit
            default_window: Window length in seconds
        """
        if default_limit < 1 or default_window < 1:
            raise ValueError("default_limit and default_window must be positive")

        if strategy is None:
            strategy = FixedWindowStrategy(storage or InMemoryStorage())
        self.strategy = strategy
        self.storage = strategy.storage
        self.default_limit = default_limit
        self.default_window = default_window

    @classmethod
    def from_name(
        cls,
        strategy_name: str,
        storage: RateLimiterStorage,
        default_limit: int,
        default_window: int,
    ) -> "RateLimiter":
        """Build a limiter from a configured strategy name."""
        try:
            strategy_cls = STRATEGIES[strategy_name]
        except KeyError:
            raise ValueError(
                f"Unknown rate limit strategy '{strategy_name}'. "
                f"Expected one of: {', '.join(sorted(STRATEGIES))}"
            )
        return cls(
            strategy=strategy_cls(storage),
            default_limit=default_limit,
            default_window=default_window,
        )

    def check(
        self,
        identifier: str,
        limit: Optional[int] = None,
        window: Optional[int] = None,
    ) -> RateLimitResult:
        """
        Consume one request for ``identifier``.

        Returns:
            Tuple of (allowed, metadata); see ``app.ratelimit.strategies``.
        """
        return self.strategy.check(
            identifier,
            limit or self.default_limit,
            window or self.default_window,
        )

    def reset(self, identifier: str) -> None:
        self.strategy.reset(identifier)

    def close(self) -> None:
        """Release the storage backend. Called on application shutdown."""
        try:
            self.storage.close()
        except Exception as e:
            logger.warning(f"Failed to close rate limiter storage: {e}")
