import os
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from queueup.config import Config, logger
from queueup.errors import DatabaseException

redis_logger = logger.getChild("db")


class MockRedis:
    """A mock Redis implementation for testing purposes with async support."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.expiry: Dict[str, int] = {}

    async def get(self, name: str) -> Any:
        return self.data.get(name)

    async def set(self, name: str, value: str, ex: Optional[int] = None) -> None:
        self.data[name] = value
        if ex:
            self.expiry[name] = ex

    async def incr(self, name: str) -> int:
        self.data[name] = int(self.data.get(name) or 0) + 1
        return self.data[name]

    async def expire(self, name: str, time: int) -> bool:
        if name not in self.data:
            return False
        self.expiry[name] = time
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        pass


class RedisClient:
    """A singleton Redis client for interacting with Redis asynchronously."""

    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(RedisClient, cls).__new__(cls)
            cls._instance.redis = None
            cls._instance._connected = False
        return cls._instance

    async def connect(self):
        if self.redis is not None:
            return
        if os.environ.get("TESTING") == "True" or "PYTEST_CURRENT_TEST" in os.environ:
            self.redis = MockRedis()
            self._connected = True
            return
        try:
            self.redis = Redis(
                host=Config.REDIS_HOST,
                port=Config.REDIS_PORT,
                db=0,
                password=Config.REDIS_PASSWORD or None,
                decode_responses=True,
            )
            await self.redis.ping()
            self._connected = True
            redis_logger.info(f"Connected to Redis at {Config.REDIS_HOST}:{Config.REDIS_PORT}")
        except RedisError as e:
            self.redis = None
            raise DatabaseException(detail=f"Redis connection error: {str(e)}")

    async def close(self):
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False

    async def get(self, name: str) -> Any:
        if not self._connected:
            await self.connect()
        try:
            return await self.redis.get(name)
        except RedisError as e:
            raise DatabaseException(detail=f"Redis operation failed: {str(e)}")

    async def incr(self, name: str) -> int:
        if not self._connected:
            await self.connect()
        try:
            return await self.redis.incr(name)
        except RedisError as e:
            raise DatabaseException(detail=f"Redis operation failed: {str(e)}")

    async def expire(self, name: str, seconds: int) -> bool:
        if not self._connected:
            await self.connect()
        try:
            return await self.redis.expire(name, seconds)
        except RedisError as e:
            raise DatabaseException(detail=f"Redis operation failed: {str(e)}")


redis_client = RedisClient()


async def get_redis_client() -> RedisClient:
    if not redis_client._connected:
        await redis_client.connect()
    return redis_client
