"""
VerteilClient - request orchestration for the Verteil NDC API.

Combines:
- RequestRegistry for building and validating requests
- ResponseCache for per-endpoint response caching
- RateLimiter for per-endpoint fixed-window limits
- Authenticator/TokenStore for the bearer token
- RetryPolicy for transient failures, plus one forced re-authentication on 401
- HealthMonitor for metrics and recent errors
"""

import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from verteil.requests.base import BaseRequest
from verteil.requests.registry import RequestRegistry
from verteil.responses import (
    AirShoppingResponse,
    FlightPriceResponse,
    OrderViewResponse,
    SeatAvailabilityResponse,
    ServiceListResponse,
)
from verteil.services.auth import Authenticator
from verteil.services.cache import ResponseCache
from verteil.services.errors import (
    AuthenticationError,
    ConfigurationError,
    DeadlineExceeded,
    RateLimitExceeded,
    ValidationError,
    VerteilApiError,
)
from verteil.services.monitor import HealthMonitor, HealthReport
from verteil.services.rate_limiter import RateLimit, RateLimiter
from verteil.services.retry import AttemptResult, Outcome, RetryPolicy
from verteil.services.store import KeyValueStore, create_store
from verteil.services.token_store import TokenStore
from verteil.services.transport import HttpTransport
from verteil.settings import Settings, global_settings
from verteil.utils import sanitize_log_data


def _rate_limits(settings: Settings) -> dict[str, RateLimit]:
    try:
        return {
            name: RateLimit(requests=int(limit["requests"]), duration=int(limit["duration"]))
            for name, limit in settings.rate_limits.items()
        }
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid rate limit configuration: {e}") from e


class VerteilClient:
    """
    Async client for the Verteil NDC API.

    Usage:
        async with VerteilClient() as client:
            shopping = await client.air_shopping(params)
            offers = shopping.offers

            # Raw JSON for any registered endpoint
            data = await client.execute("orderRetrieve", {"owner": "SQ", "value": "ABC123"})
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        transport: HttpTransport | None = None,
        registry: RequestRegistry | None = None,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or global_settings
        self._owns_store = store is None
        self._store = store or create_store(self.settings.store_backend, self.settings.store_path)
        self._registry = registry or RequestRegistry()

        cache_ttl = self.settings.cache_ttl if self.settings.cache_enabled else {}
        rate_limits = _rate_limits(self.settings)
        self._registry.ensure_known(cache_ttl, "cache TTL")
        self._registry.ensure_known(rate_limits, "rate limit")

        self.token_store = TokenStore(self._store, self.settings.encryption_key, clock=clock)
        self.cache = ResponseCache(self._store, cache_ttl, debug=self.settings.log_level.upper() == "DEBUG")
        self.rate_limiter = RateLimiter(self._store, rate_limits)
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=self.settings.retry_max_attempts,
            base_delay=self.settings.retry_delay_ms / 1000,
            multiplier=self.settings.retry_multiplier,
        )
        self.transport = transport or HttpTransport(
            self.settings.base_url,
            timeout=self.settings.timeout,
            verify_ssl=self.settings.verify_ssl,
        )
        self.authenticator = Authenticator(
            self.transport,
            self.token_store,
            self.settings.username,
            self.settings.password,
            token_ttl_minutes=self.settings.token_ttl,
        )
        self.monitor = HealthMonitor(
            self._store,
            self.token_store,
            self.rate_limiter,
            self.cache,
            retention_hours=self.settings.metrics_retention,
            enabled=self.settings.monitoring_enabled,
            clock=clock,
        )

    @property
    def endpoints(self) -> list[str]:
        return self._registry.endpoints

    async def execute(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        Call an endpoint and return the response JSON.

        Args:
            endpoint: Registered endpoint name (e.g. "airShopping")
            params: Request params for the endpoint's request class
            timeout: Overall deadline in seconds across all retry attempts

        Raises:
            ValidationError: Unknown endpoint or invalid params (nothing is sent)
            RateLimitExceeded: Local limit reached (nothing is sent)
            AuthenticationError: Credentials rejected or 401 persisted after re-authentication
            RetryExhausted: Retryable failure on every attempt
            DeadlineExceeded: ``timeout`` ran out before the next attempt or re-authentication
            UpstreamApiError: Non-retryable error response
        """
        params = params or {}
        try:
            request = self._registry.build(
                endpoint,
                params,
                office_id=self.settings.office_id,
                third_party_id=self.settings.third_party_id,
            )
            request.validate()
        except ValidationError as e:
            logger.warning(f"Rejected {endpoint} request: {e.message} (params {sanitize_log_data(params)})")
            raise

        cache_scope = request.cache_scope()
        cached = await self.cache.get(endpoint, params, cache_scope)
        if cached is not None:
            logger.debug(f"Serving {endpoint} from cache")
            return cached

        if not await self.rate_limiter.try_acquire(endpoint):
            retry_after = max(1, await self.rate_limiter.retry_after_seconds(endpoint))
            raise RateLimitExceeded(endpoint, retry_after)

        logger.debug(f"Calling {endpoint} with params {sanitize_log_data(params)}")
        deadline = time.monotonic() + timeout if timeout else None
        started = time.monotonic()

        try:
            result = await self._send(endpoint, request, deadline)
        except VerteilApiError as e:
            await self._record_failure(endpoint, started, e)
            raise

        await self.cache.put(endpoint, params, result.data, cache_scope)
        await self.monitor.record_metric(endpoint, self._elapsed_ms(started), result.status_code or 200)
        return result.data

    async def _send(self, endpoint: str, request: BaseRequest, deadline: float | None) -> AttemptResult:
        path = request.path()
        body = request.to_wire_format()
        headers = request.headers()
        token: str | None = None
        rejected_token: str | None = None

        async def attempt() -> AttemptResult:
            # Token is acquired per attempt so token endpoint hiccups are retried too
            nonlocal token
            if rejected_token is None:
                token = await self.authenticator.get_token()
            else:
                token = await self.authenticator.refresh(rejected_token)
            return await self.transport.send(path, body, headers, token, endpoint)

        result = await self.retry_policy.execute(attempt, context=endpoint, deadline=deadline)

        if result.outcome is Outcome.UNAUTHORIZED:
            if deadline is not None and time.monotonic() >= deadline:
                raise DeadlineExceeded(endpoint, attempts=1, last_error=result.error) from result.error

            logger.warning(f"{endpoint} rejected the token, re-authenticating once")
            rejected_token = token
            result = await self.retry_policy.execute(attempt, context=endpoint, deadline=deadline)
            if result.outcome is Outcome.UNAUTHORIZED:
                rejected = result.error
                raise AuthenticationError(
                    f"{endpoint} rejected a freshly issued token: "
                    f"{rejected.message if rejected else 'HTTP 401'}",
                    status_code=401,
                    error_response=rejected.error_response if rejected else None,
                    endpoint=endpoint,
                ) from rejected

        if not result.ok:
            raise result.error or VerteilApiError(
                f"{endpoint} failed", status_code=result.status_code, endpoint=endpoint
            )
        return result

    async def _record_failure(self, endpoint: str, started: float, error: VerteilApiError) -> None:
        if error.endpoint is None:
            error.endpoint = endpoint
        logger.error(
            f"Verteil {endpoint} failed: {error.message} "
            f"(status {error.status_code}, response {sanitize_log_data(error.error_response)})"
        )
        await self.monitor.record_metric(endpoint, self._elapsed_ms(started), error.status_code or 0)
        await self.monitor.record_error(endpoint, error)

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.monotonic() - started) * 1000, 2)

    # Endpoint methods

    async def air_shopping(self, params: dict[str, Any], timeout: float | None = None) -> AirShoppingResponse:
        return AirShoppingResponse.from_payload(await self.execute("airShopping", params, timeout))

    async def flight_price(self, params: dict[str, Any], timeout: float | None = None) -> FlightPriceResponse:
        return FlightPriceResponse.from_payload(await self.execute("flightPrice", params, timeout))

    async def order_create(self, params: dict[str, Any], timeout: float | None = None) -> OrderViewResponse:
        return OrderViewResponse.from_payload(await self.execute("orderCreate", params, timeout))

    async def order_retrieve(self, params: dict[str, Any], timeout: float | None = None) -> OrderViewResponse:
        return OrderViewResponse.from_payload(await self.execute("orderRetrieve", params, timeout))

    async def order_cancel(self, params: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        return await self.execute("orderCancel", params, timeout)

    async def seat_availability(
        self, params: dict[str, Any], timeout: float | None = None
    ) -> SeatAvailabilityResponse:
        return SeatAvailabilityResponse.from_payload(await self.execute("seatAvailability", params, timeout))

    async def service_list(self, params: dict[str, Any], timeout: float | None = None) -> ServiceListResponse:
        return ServiceListResponse.from_payload(await self.execute("serviceList", params, timeout))

    # Maintenance and health

    async def flush_cache(self, endpoint: str | None = None) -> int:
        """Clear cached responses for one endpoint or all of them."""
        if endpoint is not None and endpoint not in self._registry:
            raise ValidationError(f"Unknown endpoint '{endpoint}'", endpoint=endpoint)
        return await self.cache.clear(endpoint)

    async def health(self) -> HealthReport:
        return await self.monitor.check_health()

    async def close(self) -> None:
        """Close the HTTP client and the store if this client created it."""
        await self.transport.close()
        if self._owns_store:
            await self._store.close()
        logger.debug("VerteilClient closed")

    async def __aenter__(self) -> "VerteilClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


# Global client instance
_global_client: VerteilClient | None = None


def get_verteil_client() -> VerteilClient:
    """Get the global client instance."""
    global _global_client
    if _global_client is None:
        _global_client = VerteilClient()
    return _global_client


async def close_verteil_client() -> None:
    """Close the global client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
