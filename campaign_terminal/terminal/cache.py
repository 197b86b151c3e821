"""
Result Cache - TTL-classed report cache with memory and Redis backends.

Keys embed the calendar date, so yesterday's reports are never served today.
Entries are immutable; a write swaps in a whole new entry, so a reader sees
either the previous report or the new one, never a mix.

Usage:
    cache = ResultCache(MemoryCacheBackend())
    key = cache_key("low_leads", {})

    report = await cache.get_or_fetch(key, "analytics", build_report)
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from campaign_terminal.config import DEFAULT_CACHE_TTLS, settings
from campaign_terminal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TTL_SECONDS = 1800
REDIS_KEY_PREFIX = "terminal:"


def cache_key(endpoint: str, params: dict[str, Any] | None = None, today: date | None = None) -> str:
    """'{endpoint}:{YYYY-MM-DD}:{params as sorted JSON}'"""
    day = (today or date.today()).isoformat()
    return f"{endpoint}:{day}:{json.dumps(params or {}, sort_keys=True)}"


def describe_age(age_seconds: float) -> str:
    minutes = int(age_seconds // 60)
    if minutes < 1:
        return "just now"
    if minutes == 1:
        return "1 minute ago"
    return f"{minutes} minutes ago"


@dataclass(slots=True, frozen=True)
class CacheEntry:
    key: str
    payload: Any
    written_at: float
    ttl_class: str

    def to_json(self) -> str:
        return json.dumps(
            {"payload": self.payload, "written_at": self.written_at, "ttl_class": self.ttl_class}
        )

    @classmethod
    def from_json(cls, key: str, raw: str) -> CacheEntry:
        data = json.loads(raw)
        return cls(key, data["payload"], float(data["written_at"]), data["ttl_class"])


class CacheBackend(ABC):
    """Storage for whole cache entries. Expiry policy lives in ResultCache."""

    name: str = "abstract"

    @abstractmethod
    async def load(self, key: str) -> CacheEntry | None: ...

    @abstractmethod
    async def store(self, entry: CacheEntry, ttl_seconds: int) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    @abstractmethod
    async def clear(self, pattern: str | None = None) -> int: ...


class MemoryCacheBackend(CacheBackend):
    """
    Process-local dict of entries, guarded by a lock for atomic swaps.

    Keys embed the date, so yesterday's entries are never read again; every
    store sweeps entries whose TTL has run out as of the new entry's write time.
    """

    name = "memory"

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._expires_at: dict[str, float] = {}
        self._lock = threading.Lock()

    async def load(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    async def store(self, entry: CacheEntry, ttl_seconds: int) -> None:
        with self._lock:
            self._sweep(entry.written_at)
            self._entries[entry.key] = entry
            self._expires_at[entry.key] = entry.written_at + ttl_seconds

    def _sweep(self, now: float) -> None:
        expired = [key for key, expires_at in self._expires_at.items() if expires_at < now]
        for key in expired:
            del self._entries[key]
            del self._expires_at[key]

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._expires_at.pop(key, None)

    async def clear(self, pattern: str | None = None) -> int:
        with self._lock:
            if pattern is None:
                removed = len(self._entries)
                self._entries.clear()
                self._expires_at.clear()
                return removed
            doomed = [key for key in self._entries if pattern in key]
            for key in doomed:
                del self._entries[key]
                del self._expires_at[key]
            return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheBackend(CacheBackend):
    """
    Shared cache across workers.

    Entries are stored as JSON with SETEX, so Redis expires them on its own
    even if nobody reads them again.
    """

    name = "redis"

    def __init__(self, redis_client, prefix: str = REDIS_KEY_PREFIX):
        self.redis = redis_client
        self.prefix = prefix

    async def load(self, key: str) -> CacheEntry | None:
        raw = await self.redis.get(self.prefix + key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_json(key, raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry", key=key[:60], error=str(e))
            await self.redis.delete(self.prefix + key)
            return None

    async def store(self, entry: CacheEntry, ttl_seconds: int) -> None:
        await self.redis.set_with_ttl(self.prefix + entry.key, entry.to_json(), ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self.prefix + key)

    async def clear(self, pattern: str | None = None) -> int:
        glob = f"{self.prefix}*{pattern}*" if pattern else f"{self.prefix}*"
        return await self.redis.delete_matching(glob)


class ResultCache:
    """
    TTL-classed cache in front of a backend.

    Args:
        backend: Entry storage
        ttls: Seconds per TTL class
        default_ttl: Seconds for classes missing from ttls
        clock: Wall-clock source, injectable for tests
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        ttls: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
        default_ttl: int = FALLBACK_TTL_SECONDS,
    ):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.ttls = dict(DEFAULT_CACHE_TTLS if ttls is None else ttls)
        self.default_ttl = default_ttl
        self._clock = clock
        self._inflight: dict[str, asyncio.Future] = {}

    @classmethod
    def from_settings(cls, redis_client=None) -> ResultCache:
        if settings.use_redis_cache() and redis_client is not None:
            backend: CacheBackend = RedisCacheBackend(redis_client)
        else:
            backend = MemoryCacheBackend()
        return cls(backend, settings.get_cache_ttls(), default_ttl=settings.CACHE_DEFAULT_TTL_SECONDS)

    def ttl_for(self, ttl_class: str) -> int:
        return self.ttls.get(ttl_class, self.default_ttl)

    async def _live_entry(self, key: str, ttl_class: str) -> CacheEntry | None:
        entry = await self.backend.load(key)
        if entry is None:
            return None
        if self._clock() - entry.written_at > self.ttl_for(ttl_class):
            await self.backend.delete(key)
            return None
        return entry

    async def get(self, key: str, ttl_class: str) -> Any | None:
        entry = await self._live_entry(key, ttl_class)
        return entry.payload if entry is not None else None

    async def has(self, key: str, ttl_class: str) -> bool:
        return await self._live_entry(key, ttl_class) is not None

    async def set(self, key: str, payload: Any, ttl_class: str) -> None:
        entry = CacheEntry(key=key, payload=payload, written_at=self._clock(), ttl_class=ttl_class)
        await self.backend.store(entry, self.ttl_for(ttl_class))

    async def clear(self, pattern: str | None = None) -> int:
        removed = await self.backend.clear(pattern)
        logger.info("Cache cleared", pattern=pattern, removed=removed, backend=self.backend.name)
        return removed

    async def get_age(self, key: str) -> str:
        entry = await self.backend.load(key)
        if entry is None:
            return "unknown"
        return describe_age(self._clock() - entry.written_at)

    async def get_or_fetch(
        self,
        key: str,
        ttl_class: str,
        fetch: Callable[[], Awaitable[Any]],
        force_refresh: bool = False,
    ) -> tuple[Any, bool]:
        """
        Return (payload, cached).

        Concurrent callers missing on the same key share one fetch. A failed
        fetch propagates to every waiter and writes nothing.
        """
        if not force_refresh:
            cached = await self.get(key, ttl_class)
            if cached is not None:
                return cached, True

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending), False

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            payload = await fetch()
            await self.set(key, payload, ttl_class)
            future.set_result(payload)
            return payload, False
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved; with no waiters asyncio would log it as unhandled
            future.exception()
            raise
        finally:
            self._inflight.pop(key, None)
