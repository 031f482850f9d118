import redis.asyncio as redis
from typing import Optional

from app.core.config import settings


class RedisClient:
    def __init__(self):
        self.redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis"""
        self.redis = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )

    async def disconnect(self):
        """Disconnect from Redis"""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def ping(self) -> bool:
        if not self.redis:
            return False
        return await self.redis.ping()

    async def incr_with_expiry(self, key: str, expire: int) -> int:
        """Increment a counter, starting its expiry window on first increment"""
        if not self.redis:
            raise RuntimeError("Redis client is not connected")
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, expire, nx=True)
            count, _ = await pipe.execute()
        return int(count)


# Global Redis client instance
redis_client = RedisClient()
