"""
ResponseCache - per-endpoint TTL cache for successful API responses.

Features:
- Only endpoints listed in the TTL table are cached (minutes per endpoint)
- Deterministic keys: params are canonicalized (sorted keys) before hashing
- Key index for clearing one endpoint or the whole namespace
- Hit/miss statistics kept in the shared store for health reporting
"""

import asyncio
import hashlib
import json
from dataclasses import dataclass
from typing import Any

from loguru import logger

from verteil.services.store import NAMESPACE, KeyValueStore

CACHE_PREFIX = f"{NAMESPACE}cache_"
CACHE_KEYS_KEY = f"{NAMESPACE}cache_keys"
CACHE_STATS_KEY = f"{NAMESPACE}cache_stats"
KEY_INDEX_TTL = 24 * 60 * 60

DEFAULT_CACHE_TTL: dict[str, float] = {
    "airShopping": 5,
    "seatAvailability": 2,
    "serviceList": 5,
    "flightPrice": 2,
}


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class ResponseCache:
    """
    Caches API responses per endpoint.

    Usage:
        cache = ResponseCache(store)

        cached = await cache.get("airShopping", params)
        if cached is not None:
            return cached

        response = await call_api()
        await cache.put("airShopping", params, response)
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_minutes: dict[str, float] | None = None,
        debug: bool = False,
    ):
        self._store = store
        self._ttl_minutes = dict(DEFAULT_CACHE_TTL if ttl_minutes is None else ttl_minutes)
        self._debug = debug
        self._lock = asyncio.Lock()

    @property
    def endpoints(self) -> list[str]:
        return [e for e, ttl in self._ttl_minutes.items() if ttl and ttl > 0]

    def is_cacheable(self, endpoint: str) -> bool:
        ttl = self._ttl_minutes.get(endpoint)
        return bool(ttl and ttl > 0)

    def generate_key(
        self, endpoint: str, params: dict[str, Any], scope: dict[str, Any] | None = None
    ) -> str:
        """
        Generate a cache key from endpoint and canonicalized params.

        ``scope`` holds request values that live outside params (office and
        third-party IDs); responses for different scopes never share a key.
        """
        keyed = {"params": params, "scope": scope} if scope else params
        canonical = json.dumps(keyed, sort_keys=True, separators=(",", ":"), default=str)
        param_hash = hashlib.md5(canonical.encode()).hexdigest()
        return f"{CACHE_PREFIX}{endpoint}_{param_hash}"

    async def get(
        self, endpoint: str, params: dict[str, Any], scope: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Return the cached response, or None on miss / non-cacheable endpoint."""
        if not self.is_cacheable(endpoint):
            return None

        key = self.generate_key(endpoint, params, scope)
        cached = await self._store.get(key)

        if cached is None:
            await self._bump_stats(misses=1)
            self._log(f"MISS: {key}")
            return None

        await self._bump_stats(hits=1)
        self._log(f"HIT: {key}")
        return cached

    async def put(
        self,
        endpoint: str,
        params: dict[str, Any],
        response: dict[str, Any],
        scope: dict[str, Any] | None = None,
    ) -> None:
        """Cache ``response`` for the endpoint's TTL; no-op if not cacheable."""
        if not self.is_cacheable(endpoint):
            return

        key = self.generate_key(endpoint, params, scope)
        ttl_seconds = self._ttl_minutes[endpoint] * 60
        await self._store.set(key, response, ttl_seconds)
        await self._register_key(key)
        self._log(f"SET: {key} (TTL: {ttl_seconds}s)")

    async def clear(self, endpoint: str | None = None) -> int:
        """
        Clear cached responses.

        Args:
            endpoint: Only clear this endpoint's entries; everything if omitted

        Returns:
            Number of entries removed
        """
        async with self._lock:
            keys: list[str] = await self._store.get(CACHE_KEYS_KEY, [])

            if endpoint is None:
                targets = set(keys) | set(await self._store.keys(CACHE_PREFIX))
                targets.discard(CACHE_KEYS_KEY)
                targets.discard(CACHE_STATS_KEY)
                remaining: list[str] = []
            else:
                pattern = f"{CACHE_PREFIX}{endpoint}_"
                targets = {k for k in keys if k.startswith(pattern)}
                remaining = [k for k in keys if not k.startswith(pattern)]

            removed = 0
            for key in targets:
                if await self._store.delete(key):
                    removed += 1

            if remaining:
                await self._store.set(CACHE_KEYS_KEY, remaining, KEY_INDEX_TTL)
            else:
                await self._store.delete(CACHE_KEYS_KEY)

        logger.info(f"Cleared {removed} cached responses for {endpoint or 'all endpoints'}")
        return removed

    async def stats(self) -> CacheStats:
        """Get cache statistics."""
        raw = await self._store.get(CACHE_STATS_KEY, {})
        live = 0
        for key in await self._store.get(CACHE_KEYS_KEY, []):
            if await self._store.get(key) is not None:
                live += 1
        return CacheStats(hits=raw.get("hits", 0), misses=raw.get("misses", 0), size=live)

    async def _register_key(self, key: str) -> None:
        async with self._lock:
            keys: list[str] = await self._store.get(CACHE_KEYS_KEY, [])
            if key not in keys:
                keys.append(key)
            await self._store.set(CACHE_KEYS_KEY, keys, KEY_INDEX_TTL)

    async def _bump_stats(self, hits: int = 0, misses: int = 0) -> None:
        async with self._lock:
            raw = await self._store.get(CACHE_STATS_KEY, {})
            raw["hits"] = raw.get("hits", 0) + hits
            raw["misses"] = raw.get("misses", 0) + misses
            await self._store.set(CACHE_STATS_KEY, raw)

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResponseCache] {message}")
