"""Abstract base class for cache providers.

Defines the key-value cache contract used for upstream API responses
(OpenCage lookups, Wikipedia geosearch pages).  Caches are constructed in
``main.py`` and injected, never held in module globals, so each test can
build a fresh one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for key-value cache services.

    All operations are async so a network-backed store (e.g. Redis) can be
    swapped in without blocking the event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*.

        When the cache is full the oldest entry is evicted to make room.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; a no-op if it is absent."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not expired."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""
