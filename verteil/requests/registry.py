"""
RequestRegistry - explicit endpoint name to request class map.
"""

from collections.abc import Iterable
from typing import Any

from verteil.requests.air_shopping import AirShoppingRequest
from verteil.requests.base import BaseRequest
from verteil.requests.flight_price import FlightPriceRequest
from verteil.requests.order_cancel import OrderCancelRequest
from verteil.requests.order_create import OrderCreateRequest
from verteil.requests.order_retrieve import OrderRetrieveRequest
from verteil.requests.seat_availability import SeatAvailabilityRequest
from verteil.requests.service_list import ServiceListRequest
from verteil.services.errors import ConfigurationError, ValidationError

DEFAULT_REQUESTS: dict[str, type[BaseRequest]] = {
    cls.endpoint: cls
    for cls in (
        AirShoppingRequest,
        FlightPriceRequest,
        OrderCreateRequest,
        OrderRetrieveRequest,
        OrderCancelRequest,
        SeatAvailabilityRequest,
        ServiceListRequest,
    )
}


class RequestRegistry:
    """
    Resolves endpoint names to request classes.

    Usage:
        registry = RequestRegistry()
        request = registry.build("airShopping", params, office_id="OFF1")
        request.validate()
    """

    def __init__(self, requests: dict[str, type[BaseRequest]] | None = None):
        self._requests = dict(DEFAULT_REQUESTS if requests is None else requests)

    @property
    def endpoints(self) -> list[str]:
        return list(self._requests)

    def __contains__(self, endpoint: str) -> bool:
        return endpoint in self._requests

    def get(self, endpoint: str) -> type[BaseRequest]:
        try:
            return self._requests[endpoint]
        except KeyError:
            raise ValidationError(f"Unknown endpoint '{endpoint}'", endpoint=endpoint) from None

    def build(
        self,
        endpoint: str,
        params: dict[str, Any],
        office_id: str | None = None,
        third_party_id: str | None = None,
    ) -> BaseRequest:
        return self.get(endpoint)(params, office_id=office_id, third_party_id=third_party_id)

    def ensure_known(self, names: Iterable[str], table: str) -> None:
        """Raise ConfigurationError if ``table`` refers to an endpoint with no request class."""
        unknown = sorted(set(names) - set(self._requests) - {"default"})
        if unknown:
            raise ConfigurationError(f"Unknown endpoint(s) in {table} configuration: {', '.join(unknown)}")
