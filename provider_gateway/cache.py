"""TTL cache with bounded size and a background expiry sweep."""
from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from provider_gateway.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60
EVICTION_FRACTION = 0.1


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """In-process cache for normalized provider responses.

    Each entry carries its own expiration. When the cache is full the entries
    closest to expiring are evicted first. The cache is meant to be used from a
    single event loop and holds no locks.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        sweep_interval_seconds: Optional[float] = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ConfigurationError(f"Cache max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}
        self._sweeper: Optional["asyncio.Task[None]"] = None

    @property
    def max_size(self) -> int:
        return self._max_size

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            self._store.pop(key, None)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        entry = self._live_entry(key)
        return entry.value if entry else None

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if key not in self._store and len(self._store) >= self._max_size:
            self._evict_nearest_expiring()
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def ttl(self, key: str) -> int:
        """Return the remaining lifetime in whole seconds, or ``-2`` when absent."""

        entry = self._live_entry(key)
        if entry is None:
            return -2
        return math.ceil(entry.expires_at - self._clock())

    def expire(self, key: str, ttl_seconds: float) -> bool:
        entry = self._live_entry(key)
        if entry is None:
            return False
        entry.expires_at = self._clock() + ttl_seconds
        return True

    def keys(self) -> List[str]:
        self.purge_expired()
        return list(self._store)

    def size(self) -> int:
        self.purge_expired()
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def stats(self) -> Dict[str, int]:
        return {"size": self.size(), "maxSize": self._max_size}

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""

        now = self._clock()
        expired = [key for key, entry in self._store.items() if now > entry.expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _evict_nearest_expiring(self) -> None:
        ordered = sorted(self._store.items(), key=lambda item: item[1].expires_at)
        count = math.ceil(len(ordered) * EVICTION_FRACTION)
        for key, _ in ordered[:count]:
            del self._store[key]
        LOGGER.debug("cache eviction", extra={"reason": f"evicted {count} entries"})

    async def get_or_set(
        self, key: str, fetcher: Callable[[], Awaitable[Any]], ttl_seconds: float
    ) -> Any:
        """Return the cached value for ``key`` or fetch, cache and return it.

        Concurrent misses on the same key share one in-flight fetch. A failing
        fetch propagates to every waiter and nothing is cached.
        """

        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._pending.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._fill(key, fetcher, ttl_seconds))
            self._pending[key] = pending
        # shield so a cancelled caller does not abort the shared fetch
        return await asyncio.shield(pending)

    async def _fill(
        self, key: str, fetcher: Callable[[], Awaitable[Any]], ttl_seconds: float
    ) -> Any:
        try:
            value = await fetcher()
        finally:
            self._pending.pop(key, None)
        self.set(key, value, ttl_seconds)
        return value

    async def warmup(
        self,
        keys: Iterable[str],
        fetcher: Callable[[str], Awaitable[Any]],
        ttl_seconds: float,
    ) -> None:
        """Populate missing keys concurrently; individual failures are logged."""

        async def warm(key: str) -> None:
            if self.has(key):
                return
            try:
                value = await fetcher(key)
            except Exception:  # noqa: BLE001
                LOGGER.exception("cache warmup failed", extra={"cache_key": key})
                return
            self.set(key, value, ttl_seconds)

        await asyncio.gather(*(warm(key) for key in keys))

    def start(self) -> None:
        """Start the periodic expiry sweep on the running event loop."""

        if not self._sweep_interval or self._sweeper is not None:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = self.purge_expired()
            if removed:
                LOGGER.debug("cache sweep", extra={"reason": f"removed {removed} expired entries"})
