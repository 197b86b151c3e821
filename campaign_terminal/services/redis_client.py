"""
Shared Redis connection for the result cache.

Only the handful of commands the cache backend needs are exposed. Read and
write failures are logged and reported as misses, so a Redis outage degrades
the terminal to uncached upstream fetches instead of failing requests.
"""

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from campaign_terminal.config import settings
from campaign_terminal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POOL_SIZE = 20
SCAN_BATCH = 200


class FastRedisClient:
    """Pooled async Redis client backing the shared result cache."""

    def __init__(self, url: str | None = None):
        self.url = url
        self.pool: ConnectionPool | None = None
        self.client: redis.Redis | None = None
        self._initialized = False

    async def initialize(self):
        """Open the pool and verify it with a PING."""
        if self._initialized:
            return

        redis_url = self.url or settings.REDIS_URL
        if not redis_url:
            raise RuntimeError("REDIS_URL is not configured")

        try:
            self.pool = ConnectionPool.from_url(
                redis_url,
                max_connections=POOL_SIZE,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)
            await self.client.ping()
        except Exception as e:
            logger.error("Cache Redis connection failed", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

        self._initialized = True
        logger.info("Cache Redis connected", max_connections=POOL_SIZE)

    async def close(self):
        if self.client:
            await self.client.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None
        self._initialized = False
        logger.info("Cache Redis closed")

    async def _connection(self) -> redis.Redis:
        if not self._initialized:
            logger.warning("Cache Redis used before startup, connecting lazily")
            await self.initialize()
        return self.client

    async def ping(self) -> bool:
        try:
            conn = await self._connection()
            return bool(await conn.ping())
        except Exception as e:
            logger.error("Cache Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            conn = await self._connection()
            return await conn.get(key)
        except Exception as e:
            logger.error("Cache read failed, treating as miss", key=key[:60], error=str(e))
            return None

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        """SETEX when a TTL is given, plain SET otherwise."""
        try:
            conn = await self._connection()
            if ttl_s:
                return bool(await conn.setex(key, ttl_s, value))
            return bool(await conn.set(key, value))
        except Exception as e:
            logger.error("Cache write failed", key=key[:60], error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            conn = await self._connection()
            return await conn.delete(key) > 0
        except Exception as e:
            logger.error("Cache delete failed", key=key[:60], error=str(e))
            return False

    async def eval(self, script: str, numkeys: int, *keys_and_args):
        """Run a Lua script atomically. Errors propagate; the caller decides how to degrade."""
        conn = await self._connection()
        return await conn.eval(script, numkeys, *keys_and_args)

    async def delete_matching(self, pattern: str) -> int:
        """SCAN for a glob pattern and delete the hits; returns how many went."""
        try:
            conn = await self._connection()
            removed = 0
            async for key in conn.scan_iter(match=pattern, count=SCAN_BATCH):
                removed += await conn.delete(key)
            return removed
        except Exception as e:
            logger.error("Cache pattern delete failed", pattern=pattern[:60], error=str(e))
            return 0


fast_redis = FastRedisClient()
