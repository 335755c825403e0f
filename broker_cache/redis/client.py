"""
Redis connection management with connection pooling.
One pool per process, shared by every client's subscription store.
"""
import asyncio
from typing import Optional
import redis.asyncio as aioredis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError
from broker_cache.config import Settings, settings
from broker_cache.exceptions import StoreConnectionError
from broker_cache.utils.logging import get_logger

logger = get_logger("redis.client")

HEALTH_CHECK_TIMEOUT = 2.0

# Global connection pool
_pool: Optional[ConnectionPool] = None
_pool_url: Optional[str] = None
_client: Optional[aioredis.Redis] = None


async def get_redis_pool(config: Optional[Settings] = None) -> ConnectionPool:
    """
    Get or create the Redis connection pool.

    The settings are only read when the pool is first created. A later config
    pointing at another REDIS_URL still gets the existing pool, with a warning.
    """
    global _pool, _pool_url

    if _pool is not None:
        if config is not None and config.REDIS_URL != _pool_url:
            logger.warning(
                f"Ignoring REDIS_URL {config.REDIS_URL}, pool already connected to {_pool_url}",
                extra={"extra_data": {"requested_url": config.REDIS_URL, "pool_url": _pool_url}},
            )
        return _pool

    config = config or settings
    logger.info(f"Creating Redis connection pool (max_connections={config.REDIS_MAX_CONNECTIONS})")
    _pool_url = config.REDIS_URL
    _pool = ConnectionPool.from_url(
        config.REDIS_URL,
        max_connections=config.REDIS_MAX_CONNECTIONS,
        socket_timeout=config.REDIS_SOCKET_TIMEOUT,
        retry_on_timeout=config.REDIS_RETRY_ON_TIMEOUT,
        decode_responses=True,
        encoding="utf-8",
    )

    return _pool


async def get_redis(config: Optional[Settings] = None) -> aioredis.Redis:
    """
    Get a Redis client instance from the connection pool.
    """
    global _client

    # Always consulted so a mismatched REDIS_URL is reported
    pool = await get_redis_pool(config)
    if _client is None:
        _client = aioredis.Redis(connection_pool=pool)
        logger.info("Redis client initialized")

    return _client


async def connect(config: Optional[Settings] = None) -> aioredis.Redis:
    """
    Get the shared Redis client and make sure the server answers.

    Raises:
        StoreConnectionError: if the server cannot be reached
    """
    client = await get_redis(config)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error(f"Redis connection failed: {e}")
        raise StoreConnectionError(f"Redis unreachable: {e}") from e
    return client


async def close_redis():
    """
    Close the Redis connection pool gracefully.
    Should be called during shutdown.
    """
    global _pool, _pool_url, _client

    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis client closed")

    if _pool is not None:
        await _pool.disconnect()
        _pool = None
        _pool_url = None
        logger.info("Redis connection pool closed")


async def check_redis_health(config: Optional[Settings] = None) -> bool:
    """
    Check if Redis is healthy and responsive.
    Returns True if Redis is available, False otherwise.
    """
    try:
        client = await get_redis(config)
        result = await asyncio.wait_for(client.ping(), timeout=HEALTH_CHECK_TIMEOUT)
        return result is True
    except (RedisError, OSError, asyncio.TimeoutError) as e:
        logger.error(f"Redis health check failed: {e}")
        return False
