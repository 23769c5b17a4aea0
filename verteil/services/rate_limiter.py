"""
RateLimiter - fixed-window request counter per endpoint.

The window is a counter key in the shared store that expires after the
window duration: the first request opens it, later requests increment it
until the limit is hit. Bursts at window boundaries are accepted.
"""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from verteil.services.store import NAMESPACE, KeyValueStore

RATE_LIMIT_PREFIX = f"{NAMESPACE}ratelimit_"


@dataclass(frozen=True)
class RateLimit:
    """Requests allowed per window of ``duration`` seconds."""

    requests: int
    duration: int


DEFAULT_RATE_LIMITS: dict[str, RateLimit] = {
    "default": RateLimit(requests=60, duration=60),
    "airShopping": RateLimit(requests=30, duration=60),
    "orderCreate": RateLimit(requests=20, duration=60),
}


class RateLimiter:
    """
    Per-endpoint fixed-window limiter.

    Usage:
        limiter = RateLimiter(store)

        if not await limiter.try_acquire("airShopping"):
            raise RateLimitExceeded(
                "airShopping", await limiter.retry_after_seconds("airShopping")
            )
    """

    def __init__(
        self,
        store: KeyValueStore,
        limits: dict[str, RateLimit] | None = None,
    ):
        self._store = store
        self._limits = dict(DEFAULT_RATE_LIMITS if limits is None else limits)
        if "default" not in self._limits:
            self._limits["default"] = DEFAULT_RATE_LIMITS["default"]
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def endpoints(self) -> list[str]:
        """Endpoints with a specific limit (excludes ``default``)."""
        return [e for e in self._limits if e != "default"]

    def get_limit(self, endpoint: str) -> RateLimit:
        return self._limits.get(endpoint, self._limits["default"])

    def _key(self, endpoint: str) -> str:
        return f"{RATE_LIMIT_PREFIX}{endpoint}"

    def _lock_for(self, endpoint: str) -> asyncio.Lock:
        if endpoint not in self._locks:
            self._locks[endpoint] = asyncio.Lock()
        return self._locks[endpoint]

    async def try_acquire(self, endpoint: str) -> bool:
        """Count a request against the window; False means the caller must not proceed."""
        limit = self.get_limit(endpoint)
        key = self._key(endpoint)

        async with self._lock_for(endpoint):
            current = await self._store.get(key, 0)
            if current >= limit.requests:
                logger.warning(
                    f"Rate limit reached for {endpoint}: {current}/{limit.requests} "
                    f"per {limit.duration}s"
                )
                return False
            await self._store.incr(key, limit.duration)

        return True

    async def remaining(self, endpoint: str) -> int:
        limit = self.get_limit(endpoint)
        current = await self._store.get(self._key(endpoint), 0)
        return max(0, limit.requests - current)

    async def retry_after_seconds(self, endpoint: str) -> int:
        """Seconds until the current window resets, 0 when no window is open."""
        ttl = await self._store.ttl(self._key(endpoint))
        return math.ceil(ttl) if ttl else 0

    async def clear(self, endpoint: str) -> None:
        await self._store.delete(self._key(endpoint))

    async def clear_all(self) -> None:
        await self._store.clear(RATE_LIMIT_PREFIX)

    async def status(self) -> list[dict[str, Any]]:
        """Snapshot of every endpoint with a configured limit or an open window."""
        open_windows = [
            key.removeprefix(RATE_LIMIT_PREFIX)
            for key in await self._store.keys(RATE_LIMIT_PREFIX)
        ]
        endpoints = list(dict.fromkeys(self.endpoints + open_windows))

        snapshot = []
        for endpoint in endpoints:
            limit = self.get_limit(endpoint)
            remaining = await self.remaining(endpoint)
            reset_in = await self.retry_after_seconds(endpoint)
            snapshot.append(
                {
                    "endpoint": endpoint,
                    "limit": limit.requests,
                    "remaining": remaining,
                    "resets_at": (
                        (datetime.now() + timedelta(seconds=reset_in)).isoformat(
                            timespec="seconds"
                        )
                        if reset_in
                        else None
                    ),
                    "status": self._health_status(remaining, limit.requests),
                }
            )
        return snapshot

    @staticmethod
    def _health_status(remaining: int, limit: int) -> str:
        remaining_pct = remaining / limit * 100 if limit else 0
        if remaining_pct < 10:
            return "critical"
        if remaining_pct < 30:
            return "warning"
        return "good"
