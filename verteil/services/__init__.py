"""
Service layer - the pieces VerteilClient composes.

Provides:
- KeyValueStore: Shared namespaced store (memory or disk) with per-key TTL
- TokenStore: Encrypted bearer token with expiry
- ResponseCache: Per-endpoint TTL cache of successful responses
- RateLimiter: Per-endpoint fixed-window limits
- RetryPolicy: Exponential backoff over typed attempt results
- Authenticator: Single-flight token exchange
- HttpTransport: httpx calls classified into AttemptResult
- HealthMonitor: Metrics, recent errors and the health report

VerteilClient itself lives in ``verteil.services.client``.
"""

from verteil.services.errors import (
    VerteilApiError,
    ValidationError,
    ConfigurationError,
    RateLimitExceeded,
    TransientTransportError,
    UpstreamApiError,
    AuthenticationError,
    RetryExhausted,
    DeadlineExceeded,
)
from verteil.services.store import KeyValueStore, MemoryStore, DiskStore, create_store
from verteil.services.token_store import TokenStore
from verteil.services.cache import ResponseCache, CacheStats
from verteil.services.rate_limiter import RateLimit, RateLimiter
from verteil.services.retry import AttemptResult, Outcome, RetryPolicy
from verteil.services.transport import HttpTransport
from verteil.services.auth import Authenticator
from verteil.services.monitor import HealthMonitor, HealthReport

__all__ = [
    # Errors
    "VerteilApiError",
    "ValidationError",
    "ConfigurationError",
    "RateLimitExceeded",
    "TransientTransportError",
    "UpstreamApiError",
    "AuthenticationError",
    "RetryExhausted",
    "DeadlineExceeded",
    # Store
    "KeyValueStore",
    "MemoryStore",
    "DiskStore",
    "create_store",
    "TokenStore",
    # Cache
    "ResponseCache",
    "CacheStats",
    # Rate limiting
    "RateLimit",
    "RateLimiter",
    # Retry
    "AttemptResult",
    "Outcome",
    "RetryPolicy",
    # Transport and auth
    "HttpTransport",
    "Authenticator",
    # Monitoring
    "HealthMonitor",
    "HealthReport",
]
