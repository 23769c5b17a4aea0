"""
NDC request classes.
"""

from verteil.requests.air_shopping import AirShoppingRequest
from verteil.requests.base import BaseRequest
from verteil.requests.flight_price import FlightPriceRequest
from verteil.requests.order_cancel import OrderCancelRequest
from verteil.requests.order_create import OrderCreateRequest
from verteil.requests.order_retrieve import OrderRetrieveRequest
from verteil.requests.registry import DEFAULT_REQUESTS, RequestRegistry
from verteil.requests.seat_availability import SeatAvailabilityRequest
from verteil.requests.service_list import ServiceListRequest

__all__ = [
    "BaseRequest",
    "RequestRegistry",
    "DEFAULT_REQUESTS",
    "AirShoppingRequest",
    "FlightPriceRequest",
    "OrderCreateRequest",
    "OrderRetrieveRequest",
    "OrderCancelRequest",
    "SeatAvailabilityRequest",
    "ServiceListRequest",
]
