"""Redis package for connection management and client subscriptions."""
from .client import get_redis, close_redis, check_redis_health, connect
from .subscriptions import SubscriptionStore, generate_key

__all__ = [
    "get_redis",
    "close_redis",
    "check_redis_health",
    "connect",
    "SubscriptionStore",
    "generate_key",
]
