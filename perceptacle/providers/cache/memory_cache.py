"""In-memory cache provider using cachetools.TTLCache.

Bounded, per-instance TTL, evicts the least recently used entry when full.
Suitable for a single-process deployment; swap for a shared backend via
the ICacheProvider interface when running several workers.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import structlog
from cachetools import TTLCache

from perceptacle.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory TTL cache backed by ``cachetools.TTLCache``.

    Parameters
    ----------
    max_size:
        Maximum number of entries before the least recently used one is
        evicted.
    ttl:
        Time-to-live in seconds applied to every entry.
    name:
        Label used in log events, e.g. ``"opencage"``.
    timer:
        Clock used for expiry; tests pass a fake to step time forward.
    """

    def __init__(
        self,
        max_size: int = 300,
        ttl: int = 300,
        name: str = "default",
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=max_size, ttl=ttl, timer=timer)

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Retrieve the cached value for *key*, or ``None`` if missing/expired."""
        value = self._cache.get(key)
        if value is not None:
            logger.debug("cache_hit", cache=self._name, key=key)
        else:
            logger.debug("cache_miss", cache=self._name, key=key)
        return value

    async def set(self, key: str, value: Any) -> None:
        self._cache[key] = value
        logger.debug("cache_set", cache=self._name, key=key, size=len(self._cache))

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._cache

    async def clear(self) -> None:
        self._cache.clear()
        logger.debug("cache_cleared", cache=self._name)

    def __len__(self) -> int:
        return len(self._cache)
