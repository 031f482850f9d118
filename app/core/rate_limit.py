"""
Per-user message rate limiting.

The limiter counts messages in fixed windows. Counters live in a pluggable store:
the in-memory store keeps them in this process only (reset on restart, not shared
between workers); the Redis store shares them between nodes.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from app.core.config import settings
from app.core.redis import RedisClient

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    """Counter storage used by MessageRateLimiter"""

    @abstractmethod
    async def try_acquire(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        """Count one hit against `key`; False once `limit` is exceeded in the window"""

    async def reset(self) -> None:
        pass


class InMemoryRateLimitStore(RateLimitStore):

    def __init__(self):
        # key -> (count, window reset timestamp)
        self._windows: Dict[str, Tuple[int, float]] = {}

    async def try_acquire(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        entry = self._windows.get(key)
        if entry is None or now >= entry[1]:
            self._windows[key] = (1, now + window_seconds)
            return True

        count, reset_at = entry
        if count >= limit:
            return False
        self._windows[key] = (count + 1, reset_at)
        return True

    async def reset(self) -> None:
        self._windows.clear()


class RedisRateLimitStore(RateLimitStore):

    def __init__(self, client: RedisClient):
        self.client = client

    async def try_acquire(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        count = await self.client.incr_with_expiry(key, window_seconds)
        return count <= limit


class MessageRateLimiter:
    """Allows at most `max_messages` per user in each `window_seconds` window"""

    def __init__(
        self,
        store: RateLimitStore,
        max_messages: int = 20,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic
    ):
        self.store = store
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self.clock = clock

    async def check(self, user_id: int) -> bool:
        """Record one message for the user; False when the window is exhausted"""
        allowed = await self.store.try_acquire(
            f"chat:rate:{user_id}", self.max_messages, self.window_seconds, self.clock()
        )
        if not allowed:
            logger.warning(f"Message rate limit hit for user {user_id}")
        return allowed


# Process-wide limiter, configured at startup
_message_rate_limiter: Optional[MessageRateLimiter] = None


def configure_rate_limiter(redis_client: Optional[RedisClient] = None) -> MessageRateLimiter:
    global _message_rate_limiter
    if settings.RATE_LIMIT_BACKEND == "redis" and redis_client is not None:
        store: RateLimitStore = RedisRateLimitStore(redis_client)
    else:
        store = InMemoryRateLimitStore()
    _message_rate_limiter = MessageRateLimiter(
        store,
        max_messages=settings.CHAT_RATE_LIMIT_MAX,
        window_seconds=settings.CHAT_RATE_LIMIT_WINDOW_SECONDS,
    )
    logger.info(
        f"Chat rate limiter: {settings.CHAT_RATE_LIMIT_MAX} messages / "
        f"{settings.CHAT_RATE_LIMIT_WINDOW_SECONDS}s ({type(store).__name__})"
    )
    return _message_rate_limiter


def get_rate_limiter() -> MessageRateLimiter:
    """Dependency returning the process-wide limiter"""
    if _message_rate_limiter is None:
        return configure_rate_limiter()
    return _message_rate_limiter
