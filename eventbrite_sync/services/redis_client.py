import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.asyncio.lock import Lock
from redis.exceptions import LockNotOwnedError, RedisError

from eventbrite_sync.config import settings
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled Redis client used for short-lived coordination keys"""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool"""
        if self._initialized:
            return

        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL is not configured")

        try:
            logger.info("Attempting Redis connection", url_preview=settings.REDIS_URL[:30] + "...")

            self.pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=10,
                retry_on_timeout=True,
                socket_connect_timeout=10,
                socket_timeout=10,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def acquire_lock(self, key: str, ttl_s: int) -> Lock | None:
        """
        Take a non-blocking lock that expires after ttl_s seconds.

        Returns:
            The held lock, or None if another holder has it

        Raises:
            Any Redis or initialization error; an outage is not a held lock
        """
        try:
            await self._ensure_initialized()
            lock = self.client.lock(key, timeout=ttl_s, blocking=False)
            acquired = await lock.acquire()
        except Exception as e:
            logger.error("Redis lock acquire failed", key=key[:40], error=str(e))
            raise

        return lock if acquired else None

    async def release_lock(self, lock: Lock) -> bool:
        """Release a lock we hold; the token check and delete run atomically in Redis"""
        try:
            await lock.release()
            return True
        except LockNotOwnedError:
            logger.warning("Redis lock expired before release", key=str(lock.name)[:40])
            return False
        except RedisError as e:
            logger.error("Redis lock release failed", key=str(lock.name)[:40], error=str(e))
            return False


# Global instance
fast_redis = FastRedisClient()
