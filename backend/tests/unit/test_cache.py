"""Unit tests for the tier listing cache."""
import fnmatch

import pytest

from league_billing.cache import ACTIVE_TIERS_KEY, RedisCache


class InMemoryRedis:
    """The handful of redis.asyncio calls the cache makes."""

    def __init__(self, broken: bool = False):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.broken = broken
        self.closed = False

    def _check(self):
        if self.broken:
            raise ConnectionError("redis down")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl

    async def scan_iter(self, match):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_disabled_cache_never_connects():
    """Test that a disabled cache answers without touching Redis."""
    cache = RedisCache(enabled=False)

    assert await cache.get(ACTIVE_TIERS_KEY) is None
    assert await cache.set(ACTIVE_TIERS_KEY, {"tiers": []}) is False
    assert await cache.invalidate_pattern("tiers:*") == 0
    assert cache.redis_client is None

    await cache.close()


@pytest.mark.asyncio
async def test_set_get_and_invalidate():
    """Test a cached tier listing and its invalidation on admin edits."""
    backend = InMemoryRedis()
    cache = RedisCache(enabled=True, client=backend)
    backend.store["leagues:other"] = "1"

    assert await cache.set(ACTIVE_TIERS_KEY, {"tiers": [{"name": "starter"}]}, ttl=60) is True
    assert backend.ttls[ACTIVE_TIERS_KEY] == 60
    assert await cache.get(ACTIVE_TIERS_KEY) == {"tiers": [{"name": "starter"}]}
    assert await cache.get("tiers:missing") is None

    assert await cache.invalidate_pattern("tiers:*") == 1
    assert await cache.get(ACTIVE_TIERS_KEY) is None
    assert "leagues:other" in backend.store

    await cache.close()
    assert backend.closed is True
    assert cache.redis_client is None


@pytest.mark.asyncio
async def test_redis_failure_falls_back():
    """Test that Redis errors read as misses and pause further attempts."""
    backend = InMemoryRedis(broken=True)
    cache = RedisCache(enabled=True, client=backend)

    assert await cache.get(ACTIVE_TIERS_KEY) is None

    backend.broken = False
    backend.store[ACTIVE_TIERS_KEY] = '{"tiers": []}'
    # Still cooling down, so the healthy client is not consulted yet
    assert await cache.get(ACTIVE_TIERS_KEY) is None
    assert await cache.set(ACTIVE_TIERS_KEY, {"tiers": []}) is False
