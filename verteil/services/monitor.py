"""
HealthMonitor - request metrics and derived health report.

Metrics, per-endpoint aggregates and recent errors are kept in the shared
store so a separate process (the CLI) can report on a running client.
The report only reads the token store, rate limiter and cache.

Overall status:
- critical: error rate above 25%
- degraded: error rate above 10%
- slow: average response time above 2000ms
- healthy: otherwise
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from verteil.services.cache import ResponseCache
from verteil.services.rate_limiter import RateLimiter
from verteil.services.store import NAMESPACE, KeyValueStore
from verteil.services.token_store import TokenStore

METRICS_KEY = f"{NAMESPACE}metrics"
ENDPOINT_METRICS_KEY = f"{NAMESPACE}endpoint_metrics"
RECENT_ERRORS_KEY = f"{NAMESPACE}recent_errors"

MAX_METRICS = 10_000
RESPONSE_TIME_SAMPLES = 100
RECENT_ERRORS_LIMIT = 10
REQUESTS_PER_MINUTE_WINDOW = 5 * 60


@dataclass
class Metric:
    """A single recorded API call."""

    timestamp: float
    endpoint: str
    duration: float  # milliseconds
    status_code: int

    @property
    def is_error(self) -> bool:
        return not 200 <= self.status_code < 300


@dataclass
class HealthReport:
    """Health snapshot returned by HealthMonitor.check_health()."""

    status: str
    metrics: dict[str, Any]
    endpoints: list[dict[str, Any]]
    rate_limits: list[dict[str, Any]]
    cache: dict[str, Any]
    token: dict[str, Any]
    recent_errors: list[dict[str, Any]] = field(default_factory=list)
    checked_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _error_rate(metrics: list[Metric]) -> float:
    if not metrics:
        return 0.0
    errors = sum(1 for m in metrics if m.is_error)
    return round(errors / len(metrics) * 100, 2)


def _average_duration(metrics: list[Metric]) -> float:
    if not metrics:
        return 0.0
    return round(sum(m.duration for m in metrics) / len(metrics), 2)


class HealthMonitor:
    """
    Records API metrics and builds health reports.

    Usage:
        monitor = HealthMonitor(store, token_store, rate_limiter, cache)
        await monitor.record_metric("airShopping", 812.5, 200)
        report = await monitor.check_health()
    """

    def __init__(
        self,
        store: KeyValueStore,
        token_store: TokenStore,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        retention_hours: float = 24,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._token_store = token_store
        self._rate_limiter = rate_limiter
        self._cache = cache
        self._retention_seconds = retention_hours * 3600
        self._enabled = enabled
        self._clock = clock
        self._lock = asyncio.Lock()

    # Recording

    async def record_metric(self, endpoint: str, duration: float, status_code: int) -> None:
        """Record one API call (duration in milliseconds)."""
        if not self._enabled:
            return

        now = self._clock()
        metric = Metric(timestamp=now, endpoint=endpoint, duration=duration, status_code=status_code)

        async with self._lock:
            raw = await self._store.get(METRICS_KEY, [])
            cutoff = now - self._retention_seconds
            raw = [m for m in raw if m["timestamp"] > cutoff]
            raw.append(asdict(metric))
            await self._store.set(METRICS_KEY, raw[-MAX_METRICS:], self._retention_seconds)

            await self._update_endpoint_metrics(metric)

    async def _update_endpoint_metrics(self, metric: Metric) -> None:
        all_metrics = await self._store.get(ENDPOINT_METRICS_KEY, {})
        stats = all_metrics.setdefault(
            metric.endpoint,
            {
                "success": 0,
                "failures": 0,
                "response_times": [],
                "requests_per_minute": 0.0,
                "last_updated": metric.timestamp,
            },
        )

        if metric.is_error:
            stats["failures"] += 1
        else:
            stats["success"] += 1

        stats["response_times"] = (stats["response_times"] + [metric.duration])[-RESPONSE_TIME_SAMPLES:]

        elapsed = metric.timestamp - stats["last_updated"]
        if elapsed > 0:
            stats["requests_per_minute"] = 60 / elapsed
        stats["last_updated"] = metric.timestamp

        await self._store.set(ENDPOINT_METRICS_KEY, all_metrics, 24 * 3600)

    async def record_error(self, endpoint: str, error: Exception) -> None:
        """Keep the error in the short list shown by the health report."""
        if not self._enabled:
            return

        entry = {
            "timestamp": datetime.fromtimestamp(self._clock()).isoformat(timespec="seconds"),
            "endpoint": endpoint,
            "type": type(error).__name__,
            "message": str(error),
            "code": getattr(error, "status_code", None),
        }
        async with self._lock:
            errors = await self._store.get(RECENT_ERRORS_KEY, [])
            errors = [entry] + errors[: RECENT_ERRORS_LIMIT - 1]
            await self._store.set(RECENT_ERRORS_KEY, errors, self._retention_seconds)

    # Reporting

    async def _load_metrics(self) -> list[Metric]:
        cutoff = self._clock() - self._retention_seconds
        return [
            Metric(**m) for m in await self._store.get(METRICS_KEY, []) if m["timestamp"] > cutoff
        ]

    async def get_metrics_summary(self) -> dict[str, Any]:
        metrics = await self._load_metrics()
        recent_cutoff = self._clock() - REQUESTS_PER_MINUTE_WINDOW
        recent = [m for m in metrics if m.timestamp > recent_cutoff]

        by_endpoint: dict[str, list[Metric]] = {}
        for m in metrics:
            by_endpoint.setdefault(m.endpoint, []).append(m)

        return {
            "total_requests": len(metrics),
            "requests_per_minute": round(len(recent) / (REQUESTS_PER_MINUTE_WINDOW / 60), 2),
            "average_response_time": _average_duration(metrics),
            "error_rate": _error_rate(metrics),
            "endpoint_stats": {
                endpoint: {
                    "count": len(items),
                    "average_duration": _average_duration(items),
                    "error_rate": _error_rate(items),
                }
                for endpoint, items in by_endpoint.items()
            },
        }

    async def get_endpoint_metrics(self) -> list[dict[str, Any]]:
        all_metrics = await self._store.get(ENDPOINT_METRICS_KEY, {})
        result = []
        for endpoint, stats in all_metrics.items():
            total = stats["success"] + stats["failures"]
            success_rate = round(stats["success"] / total * 100, 2) if total else 0.0
            times = stats["response_times"]
            avg_time = round(sum(times) / len(times), 2) if times else 0.0
            result.append(
                {
                    "endpoint": endpoint,
                    "success_rate": success_rate,
                    "avg_response_time": avg_time,
                    "requests_per_minute": round(stats["requests_per_minute"], 2),
                    "status": self._endpoint_status(avg_time, success_rate),
                }
            )
        return result

    async def get_cache_status(self) -> dict[str, Any]:
        stats = await self._cache.stats()
        hit_rate = stats.hit_rate * 100
        if hit_rate > 80:
            status = "optimal"
        elif hit_rate > 50:
            status = "acceptable"
        else:
            status = "suboptimal"
        return {
            "status": status,
            "hit_rate": round(hit_rate, 2),
            "hits": stats.hits,
            "misses": stats.misses,
            "items_count": stats.size,
        }

    async def get_token_status(self) -> dict[str, Any]:
        if not await self._token_store.has_valid():
            return {"status": "missing", "valid": False, "expires_in": None}

        expires_at = await self._token_store.expires_at()
        expires_in = (
            max(0, int((expires_at - self._clock()) // 60)) if expires_at is not None else None
        )
        return {"status": "active", "valid": True, "expires_in": expires_in}

    async def get_recent_errors(self) -> list[dict[str, Any]]:
        return await self._store.get(RECENT_ERRORS_KEY, [])

    async def check_health(self) -> HealthReport:
        """Build the full health report."""
        metrics = await self.get_metrics_summary()
        report = HealthReport(
            status=self._overall_status(metrics),
            metrics=metrics,
            endpoints=await self.get_endpoint_metrics(),
            rate_limits=await self._rate_limiter.status(),
            cache=await self.get_cache_status(),
            token=await self.get_token_status(),
            recent_errors=await self.get_recent_errors(),
        )
        logger.debug(f"Health check: {report.status}")
        return report

    @staticmethod
    def _overall_status(metrics: dict[str, Any]) -> str:
        if metrics["error_rate"] > 25:
            return "critical"
        if metrics["error_rate"] > 10:
            return "degraded"
        if metrics["average_response_time"] > 2000:
            return "slow"
        return "healthy"

    @staticmethod
    def _endpoint_status(avg_response_time: float, success_rate: float) -> str:
        if success_rate < 95 or avg_response_time > 2000:
            return "critical"
        if success_rate < 98 or avg_response_time > 1000:
            return "warning"
        return "healthy"
