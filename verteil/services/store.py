"""
KeyValueStore - shared namespaced storage with per-key TTL.

The token store, response cache, rate limiter and health monitor all keep
their state here under the ``verteil_`` prefix, so one backend serves all
four.

Backends:
- MemoryStore: process-local dict, async lock, injectable clock
- DiskStore: diskcache directory, shared between processes (CLI, workers)
"""

import asyncio
import copy
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import diskcache
from loguru import logger

from verteil.services.errors import ConfigurationError

NAMESPACE = "verteil_"


class KeyValueStore(ABC):
    """Async key-value store with optional expiry per key."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value for ``key`` or ``default`` if absent or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store ``value``; ``ttl_seconds=None`` means no expiry."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def incr(self, key: str, ttl_seconds: float) -> int:
        """
        Increment a counter and return the new value.

        An absent key starts at 1 and expires after ``ttl_seconds``; an
        existing key keeps its original expiry.
        """
        ...

    @abstractmethod
    async def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires, None if absent or without expiry."""
        ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        ...

    async def clear(self, prefix: str = NAMESPACE) -> int:
        """Delete every live key starting with ``prefix``."""
        removed = 0
        for key in await self.keys(prefix):
            if await self.delete(key):
                removed += 1
        return removed

    async def close(self) -> None:
        return None


@dataclass
class _Item:
    value: Any
    expires_at: float | None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryStore(KeyValueStore):
    """
    In-process store.

    Usage:
        store = MemoryStore()
        await store.set("verteil_token", blob, ttl_seconds=3300)
        blob = await store.get("verteil_token")
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._items: dict[str, _Item] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> _Item | None:
        item = self._items.get(key)
        if item is None:
            return None
        if item.is_expired(self._clock()):
            del self._items[key]
            return None
        return item

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._lock:
            item = self._live(key)
            return copy.deepcopy(item.value) if item else default

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        async with self._lock:
            self._items[key] = _Item(copy.deepcopy(value), expires_at)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._items.pop(key, None) is not None

    async def incr(self, key: str, ttl_seconds: float) -> int:
        async with self._lock:
            item = self._live(key)
            if item is None:
                self._items[key] = _Item(1, self._clock() + ttl_seconds)
                return 1
            item.value += 1
            return item.value

    async def ttl(self, key: str) -> float | None:
        async with self._lock:
            item = self._live(key)
            if item is None or item.expires_at is None:
                return None
            return max(0.0, item.expires_at - self._clock())

    async def keys(self, prefix: str = "") -> list[str]:
        async with self._lock:
            now = self._clock()
            return [
                k
                for k, item in self._items.items()
                if k.startswith(prefix) and not item.is_expired(now)
            ]


class DiskStore(KeyValueStore):
    """
    diskcache-backed store shared by every process using the same directory.

    diskcache is synchronous, so calls run in a worker thread.
    """

    def __init__(self, directory: str):
        self._cache = diskcache.Cache(directory)
        logger.debug(f"DiskStore opened at {self._cache.directory}")

    async def get(self, key: str, default: Any = None) -> Any:
        return await asyncio.to_thread(self._cache.get, key, default)

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        await asyncio.to_thread(self._cache.set, key, value, ttl_seconds)

    async def delete(self, key: str) -> bool:
        return await asyncio.to_thread(self._cache.delete, key)

    def _incr(self, key: str, ttl_seconds: float) -> int:
        with self._cache.transact():
            value, expire_time = self._cache.get(key, default=None, expire_time=True)
            if value is None:
                self._cache.set(key, 1, expire=ttl_seconds)
                return 1
            remaining = expire_time - time.time() if expire_time else None
            self._cache.set(key, value + 1, expire=remaining)
            return value + 1

    async def incr(self, key: str, ttl_seconds: float) -> int:
        return await asyncio.to_thread(self._incr, key, ttl_seconds)

    def _ttl(self, key: str) -> float | None:
        value, expire_time = self._cache.get(key, default=None, expire_time=True)
        if value is None or expire_time is None:
            return None
        return max(0.0, expire_time - time.time())

    async def ttl(self, key: str) -> float | None:
        return await asyncio.to_thread(self._ttl, key)

    def _keys(self, prefix: str) -> list[str]:
        return [
            k
            for k in self._cache.iterkeys()
            if isinstance(k, str) and k.startswith(prefix) and k in self._cache
        ]

    async def keys(self, prefix: str = "") -> list[str]:
        return await asyncio.to_thread(self._keys, prefix)

    async def close(self) -> None:
        await asyncio.to_thread(self._cache.close)


def create_store(backend: str = "memory", path: str = ".verteil_cache") -> KeyValueStore:
    """Build the store selected in settings."""
    if backend == "disk":
        return DiskStore(path)
    if backend == "memory":
        return MemoryStore()
    raise ConfigurationError(f"Unknown store backend: {backend}")
