from typing import Optional
from redis.asyncio import Redis
from snapshare.config import settings

_redis_client: Optional[Redis] = None

def get_redis_client() -> Redis:
    """Process-wide client, created lazily"""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client

def set_redis_client(client: Optional[Redis]) -> None:
    """Swap the process-wide client (tests install a fake one)"""
    global _redis_client
    _redis_client = client

class RedisService:
    def __init__(self, client: Optional[Redis] = None):
        self.redis: Redis = client or get_redis_client()

    async def setex(self, key: str, expire: int, value: str):
        """Set a key that expires after the given number of seconds"""
        await self.redis.setex(key, expire, value)

    async def get(self, key: str):
        """Get the value of a key"""
        return await self.redis.get(key)

    async def close(self):
        """Close the Redis connection"""
        await self.redis.aclose()
