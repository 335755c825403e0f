"""
Per-client routing-key subscriptions in Redis.
Each connected socket owns one Redis set holding the routing-key prefixes
it is subscribed to.
"""
import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Set, Union
import redis.asyncio as aioredis
from redis.exceptions import (
    RedisError,
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
)
from broker_cache.config import Settings, settings
from broker_cache.exceptions import (
    ExpirationNotSetError,
    StoreCommandError,
    StoreConnectionError,
)
from broker_cache.redis.client import connect as connect_redis
from broker_cache.utils.logging import get_logger

logger = get_logger("redis.subscriptions")

# Visitor for SubscriptionStore.each; only a literal False stops the iteration
Visitor = Callable[[str], Union[bool, Awaitable[bool]]]


def generate_key(environment: str, socket_id: str) -> str:
    """Redis key holding the subscriptions of one client socket."""
    return f"{environment}-broker-client-{socket_id}"


class SubscriptionStore:
    """
    Subscription set of a single client, stored in Redis.

    Every operation is one round trip to Redis (resubscribe needs up to three).
    Nothing is cached locally, so several stores for the same socket, even in
    different broker processes, see the same set.

    Store failures are raised as StoreConnectionError or StoreCommandError and
    are never retried here.
    """

    # Subscriptions of a disconnected client survive this long
    CLEAR_TIMEOUT = 5 * 60

    def __init__(
        self,
        socket_id: str,
        redis: aioredis.Redis,
        config: Optional[Settings] = None,
    ):
        self._config = config or settings
        self._socket_id = socket_id
        self._redis = redis
        self._key = generate_key(self._config.ENVIRONMENT, socket_id)

    @classmethod
    async def connect(
        cls, socket_id: str, config: Optional[Settings] = None
    ) -> "SubscriptionStore":
        """
        Create a store on the shared Redis connection.

        The key uses config.ENVIRONMENT, but the connection is the process-wide
        pool, which keeps the REDIS_URL of whichever config created it.

        Raises:
            StoreConnectionError: if Redis cannot be reached
        """
        config = config or settings
        redis = await connect_redis(config)
        return cls(socket_id, redis, config)

    @property
    def socket_id(self) -> str:
        return self._socket_id

    @property
    def key(self) -> str:
        return self._key

    def __repr__(self) -> str:
        return f"SubscriptionStore(key={self._key!r})"

    def _log_extra(self, command: str, key: Optional[str] = None, **fields) -> Dict[str, Any]:
        """Structured fields picked up by JSONFormatter."""
        data = {"key": key or self._key, "command": command, "socket_id": self._socket_id}
        data.update(fields)
        return {"extra_data": data}

    async def _execute(self, command: str, operation, key: str, *args) -> Any:
        """Run one Redis command against key, translating client errors."""
        try:
            return await operation(key, *args)
        except (RedisConnectionError, RedisTimeoutError, OSError) as e:
            logger.error(
                f"{command} on {key} failed, Redis unreachable: {e}",
                extra=self._log_extra(command, key, error=str(e)),
            )
            raise StoreConnectionError(f"{command} failed: {e}") from e
        except RedisError as e:
            logger.error(
                f"{command} on {key} failed: {e}",
                extra=self._log_extra(command, key, error=str(e)),
            )
            raise StoreCommandError(f"{command} failed: {e}") from e

    @staticmethod
    def _expect_int(command: str, reply: Any) -> int:
        # redis-py turns some integer replies (EXPIRE) into bool
        if isinstance(reply, bool):
            return int(reply)
        if not isinstance(reply, int):
            raise StoreCommandError(f"{command} returned {type(reply).__name__}, expected int")
        return reply

    @staticmethod
    def _expect_members(command: str, reply: Any) -> Set[str]:
        if not isinstance(reply, (set, list, tuple)):
            raise StoreCommandError(f"{command} returned {type(reply).__name__}, expected set")
        members = set()
        for item in reply:
            if isinstance(item, bytes):
                item = item.decode("utf-8")
            elif not isinstance(item, str):
                raise StoreCommandError(f"{command} returned a {type(item).__name__} member")
            members.add(item)
        return members

    async def _members_of(self, key: str) -> Set[str]:
        reply = await self._execute("SMEMBERS", self._redis.smembers, key)
        return self._expect_members("SMEMBERS", reply)

    async def subscribe(self, *routing_key_prefixes: str):
        """
        Add routing-key prefixes to the subscription set.
        Prefixes that are already subscribed are not an error.
        """
        if not routing_key_prefixes:
            return

        reply = await self._execute("SADD", self._redis.sadd, self._key, *routing_key_prefixes)
        # the number of new members does not matter, re-adding is fine
        self._expect_int("SADD", reply)
        logger.debug(
            f"{self._key} subscribed to {len(routing_key_prefixes)} prefixes",
            extra=self._log_extra("SADD", count=len(routing_key_prefixes)),
        )

    async def unsubscribe(self, *routing_key_prefixes: str):
        """Remove routing-key prefixes; missing ones are ignored."""
        if not routing_key_prefixes:
            return

        reply = await self._execute("SREM", self._redis.srem, self._key, *routing_key_prefixes)
        self._expect_int("SREM", reply)
        logger.debug(
            f"{self._key} unsubscribed from {len(routing_key_prefixes)} prefixes",
            extra=self._log_extra("SREM", count=len(routing_key_prefixes)),
        )

    async def has(self, routing_key_prefix: str) -> bool:
        """Whether the client is subscribed to the given prefix."""
        reply = await self._execute("SISMEMBER", self._redis.sismember, self._key, routing_key_prefix)
        return self._expect_int("SISMEMBER", reply) != 0

    async def members(self) -> Set[str]:
        """All subscribed prefixes."""
        return await self._members_of(self._key)

    async def each(self, visit: Visitor):
        """
        Call visit for every subscribed prefix, in no particular order.

        The whole set is fetched first; iteration stops the first time the
        visitor returns False. Any other result, None included, continues.
        Coroutine visitors are awaited.
        """
        for prefix in await self.members():
            result = visit(prefix)
            if asyncio.iscoroutine(result):
                result = await result
            if result is False:
                return

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        for prefix in await self.members():
            yield prefix

    async def len(self) -> int:
        """Number of subscribed prefixes."""
        reply = await self._execute("SCARD", self._redis.scard, self._key)
        return self._expect_int("SCARD", reply)

    async def resubscribe(self, socket_id: str) -> bool:
        """
        Copy the subscriptions of a previous socket into this one.

        Used when a client reconnects under a new socket id.

        Returns:
            False if the previous socket has no subscription set, True otherwise
        """
        source_key = generate_key(self._config.ENVIRONMENT, socket_id)

        reply = await self._execute("EXISTS", self._redis.exists, source_key)
        if self._expect_int("EXISTS", reply) == 0:
            logger.debug(
                f"No subscriptions to restore from {source_key}",
                extra=self._log_extra("EXISTS", source_key=source_key),
            )
            return False

        routing_key_prefixes = await self._members_of(source_key)
        await self.subscribe(*routing_key_prefixes)

        logger.debug(
            f"{self._key} restored {len(routing_key_prefixes)} prefixes from {source_key}",
            extra=self._log_extra("SMEMBERS", source_key=source_key, count=len(routing_key_prefixes)),
        )
        return True

    async def clear_with_timeout(self):
        """
        Let Redis drop the subscription set after CLEAR_TIMEOUT seconds.

        Raises:
            ExpirationNotSetError: if the key does not exist
        """
        reply = await self._execute("EXPIRE", self._redis.expire, self._key, self.CLEAR_TIMEOUT)
        if self._expect_int("EXPIRE", reply) == 0:
            raise ExpirationNotSetError(self._key)

        logger.debug(
            f"{self._key} expires in {self.CLEAR_TIMEOUT}s",
            extra=self._log_extra("EXPIRE", ttl=self.CLEAR_TIMEOUT),
        )
