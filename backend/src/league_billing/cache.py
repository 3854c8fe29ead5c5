"""Redis cache for the public tier listing.

The active tier list is read on every league form load and changes only when
a platform admin edits tiers, so it is cached briefly and invalidated on edits.
Cache failures never fail a request; callers fall back to the database.
"""
import json
import time
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from league_billing.config import settings

logger = structlog.get_logger(__name__)

ACTIVE_TIERS_KEY = "tiers:active"
ACTIVE_TIERS_TTL = 60
DEFAULT_TTL = 300

# After a Redis error, skip the cache for this many seconds
RETRY_COOLDOWN = 30.0


class RedisCache:
    """JSON values in Redis, opened lazily and bypassed while Redis is down."""

    def __init__(self, enabled: bool | None = None, client: Optional[redis.Redis] = None):
        self.enabled = settings.cache_enabled if enabled is None else enabled
        self.redis_client: Optional[redis.Redis] = client
        self._unavailable_until = 0.0

    async def _client(self) -> Optional[redis.Redis]:
        if not self.enabled or time.monotonic() < self._unavailable_until:
            return None

        if self.redis_client is None:
            client = redis.from_url(
                str(settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            await client.ping()
            self.redis_client = client
            logger.info("tier_cache_connected")

        return self.redis_client

    def _mark_unavailable(self, event: str, **context: Any) -> None:
        self._unavailable_until = time.monotonic() + RETRY_COOLDOWN
        logger.warning(event, retry_in=RETRY_COOLDOWN, **context)

    async def get(self, key: str) -> Optional[Any]:
        """Decoded value for ``key``, or None on a miss or any Redis problem."""
        try:
            client = await self._client()
            if client is None:
                return None
            raw = await client.get(key)
        except Exception as exc:
            self._mark_unavailable("tier_cache_read_failed", key=key, error=str(exc))
            return None

        logger.debug("tier_cache_lookup", key=key, hit=raw is not None)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            client = await self._client()
            if client is None:
                return False
            await client.setex(key, ttl or DEFAULT_TTL, json.dumps(value))
        except Exception as exc:
            self._mark_unavailable("tier_cache_write_failed", key=key, error=str(exc))
            return False
        return True

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key matching ``pattern``; returns how many went."""
        try:
            client = await self._client()
            if client is None:
                return 0
            keys = [key async for key in client.scan_iter(match=pattern)]
            if keys:
                await client.delete(*keys)
        except Exception as exc:
            # Stale tiers live at most ACTIVE_TIERS_TTL seconds
            self._mark_unavailable("tier_cache_invalidation_failed", pattern=pattern, error=str(exc))
            return 0

        logger.info("tier_cache_invalidated", pattern=pattern, count=len(keys))
        return len(keys)

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None


cache = RedisCache()
