"""
Broker client subscription cache.
Tracks the routing-key prefixes each connected broker client is subscribed to.
"""
from .config import Settings, settings
from .exceptions import (
    StoreError,
    StoreConnectionError,
    StoreCommandError,
    ExpirationNotSetError,
)
from .redis import SubscriptionStore, generate_key

__all__ = [
    "Settings",
    "settings",
    "StoreError",
    "StoreConnectionError",
    "StoreCommandError",
    "ExpirationNotSetError",
    "SubscriptionStore",
    "generate_key",
]
