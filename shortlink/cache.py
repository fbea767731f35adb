"""Redis cache-aside layer for the redirect hot path.

Only the immutable part of a record (original URL and expiry) is cached.
Clicks are never cached, so statistics always come from the record store.

Flow Diagram — Redirect Lookup
==============================
::
    ┌─────────────┐
    │ get(code)   │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Store   │  │ Return  │
│ lookup  │  │ payload │
└────┬────┘  └─────────┘
     ▼
┌─────────┐
│ set()   │
│ TTL ≤   │
│ expiry  │
└─────────┘

Key Behaviours
===============
- Keys are ``url:{shortcode}``.
- TTL is the configured TTL, capped at the time left before expiry.
- Redis errors are logged and treated as a miss; they never fail a redirect.
"""

__all__ = ["RedirectCache"]

import logging
import math

import redis.asyncio as redis
from prometheus_client import Counter

from shortlink.enums import CacheStatus
from shortlink.records import Clock, utc_now
from shortlink.schemas import CachedURLPayload

logger = logging.getLogger("shortlink.cache")

CACHE_LOOKUPS_TOTAL = Counter(
    "shortlink_cache_lookups_total",
    "Redirect cache lookups",
    ["cache_hit"],
)
CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Redis errors swallowed by the redirect cache",
)


class RedirectCache:
    """Caches shortcode → (original URL, expiry) in Redis."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = 3600, clock: Clock = utc_now):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = 3600, clock: Clock = utc_now) -> "RedirectCache":
        client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        return cls(client, ttl_seconds=ttl_seconds, clock=clock)

    @staticmethod
    def key(shortcode: str) -> str:
        return f"url:{shortcode}"

    async def get(self, shortcode: str) -> CachedURLPayload | None:
        try:
            cached = await self._client.get(self.key(shortcode))
        except Exception as exc:
            CACHE_ERRORS_TOTAL.inc()
            logger.warning(f"Cache read failed for {shortcode}: {exc}")
            return None

        if not cached:
            CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.MISS).inc()
            return None

        try:
            payload = CachedURLPayload.model_validate_json(cached)
        except ValueError as exc:
            logger.error(f"Cache deserialization error for {shortcode}: {exc}")
            CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.MISS).inc()
            return None

        CACHE_LOOKUPS_TOTAL.labels(cache_hit=CacheStatus.HIT).inc()
        return payload

    async def set(self, target: CachedURLPayload) -> None:
        ttl = self._ttl_seconds
        if target.expires_at is not None:
            remaining = math.ceil((target.expires_at - self._clock()).total_seconds())
            if remaining <= 0:
                return
            ttl = min(ttl, remaining)

        try:
            await self._client.set(self.key(target.shortcode), target.model_dump_json(), ex=ttl)
        except Exception as exc:
            CACHE_ERRORS_TOTAL.inc()
            logger.warning(f"Cache write failed for {target.shortcode}: {exc}")

    async def ping(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()
