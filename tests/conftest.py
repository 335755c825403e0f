"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from broker_cache.config import Settings
from broker_cache.redis import client as redis_client
from broker_cache.redis.subscriptions import SubscriptionStore


class FakeRedis:
    """In-memory Redis stand-in covering the set commands used by the store."""

    def __init__(self):
        self._sets: dict[str, set[str]] = {}
        self.expirations: dict[str, int] = {}
        self.calls: list[tuple] = []

    def _drop_if_empty(self, key: str) -> None:
        # Redis deletes a set once its last member is removed
        if key in self._sets and not self._sets[key]:
            del self._sets[key]
            self.expirations.pop(key, None)

    async def ping(self) -> bool:
        return True

    async def sadd(self, key: str, *members: str) -> int:
        self.calls.append(("sadd", key, members))
        current = self._sets.setdefault(key, set())
        added = len(set(members) - current)
        current.update(members)
        return added

    async def srem(self, key: str, *members: str) -> int:
        self.calls.append(("srem", key, members))
        current = self._sets.get(key, set())
        removed = len(current & set(members))
        current.difference_update(members)
        self._drop_if_empty(key)
        return removed

    async def smembers(self, key: str) -> set[str]:
        self.calls.append(("smembers", key))
        return self._sets.get(key, set()).copy()

    async def sismember(self, key: str, member: str) -> int:
        return int(member in self._sets.get(key, set()))

    async def scard(self, key: str) -> int:
        return len(self._sets.get(key, set()))

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self._sets)

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self._sets:
            return False
        self.expirations[key] = seconds
        return True


@pytest.fixture
def config() -> Settings:
    return Settings(ENVIRONMENT="test", LOG_JSON=False)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis, config) -> SubscriptionStore:
    return SubscriptionStore("s1", fake_redis, config)


@pytest.fixture
def reset_redis_client(monkeypatch):
    """Isolate tests from the process-wide pool and client."""
    monkeypatch.setattr(redis_client, "_pool", None)
    monkeypatch.setattr(redis_client, "_pool_url", None)
    monkeypatch.setattr(redis_client, "_client", None)
