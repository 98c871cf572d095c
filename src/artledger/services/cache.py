"""Short-TTL read-through caches consulted by the artwork workflow.

Two backends share one async contract (``get`` / ``set`` / ``remove``):
``MemoryCache`` keeps entries in-process, ``RedisCache`` keeps them in
Redis so several workers see the same invalidations.  Expiry is the only
eviction policy.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional, Protocol

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger()

# Key builders shared by every caller that populates or invalidates.
MARKETPLACE_KEY = "marketplace_artworks"


def user_artworks_key(user_id: int) -> str:
    return f"user_artworks_{user_id}"


def purchased_artworks_key(user_id: int) -> str:
    return f"purchased_artworks_{user_id}"


def seller_stats_key(user_id: int) -> str:
    return f"seller_stats_{user_id}"


def verify_key(file_hash: Optional[str], transaction_id: Optional[str]) -> str:
    return f"verify_{file_hash or ''}_{transaction_id or ''}"


def image_key(image_path: str) -> str:
    return f"image_{image_path}"


def image_exists_key(image_path: str) -> str:
    return f"image_exists_{image_path}"


class Cache(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryCache:
    """In-process expiring map.  Expired entries are dropped on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


# Stored values are tagged so raw image bytes survive the round trip.
_BYTES_TAG = b"b:"
_JSON_TAG = b"j:"


class RedisCache:
    """Redis-backed cache.  Values must be bytes or JSON-serialisable.

    Redis faults are logged and treated as misses so a cache outage never
    fails a request.
    """

    def __init__(self, redis: Redis, prefix: str = "artledger:") -> None:
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(self._key(key))
        except RedisError as exc:
            log.warning("cache_get_failed", key=key, error=str(exc))
            return None
        if raw is None:
            return None
        if raw.startswith(_BYTES_TAG):
            return raw[len(_BYTES_TAG):]
        return json.loads(raw[len(_JSON_TAG):])

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if isinstance(value, bytes):
            payload = _BYTES_TAG + value
        else:
            payload = _JSON_TAG + json.dumps(value).encode("utf-8")
        try:
            await self._redis.set(self._key(key), payload, ex=ttl_seconds)
        except RedisError as exc:
            log.warning("cache_set_failed", key=key, error=str(exc))

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as exc:
            log.warning("cache_remove_failed", key=key, error=str(exc))
