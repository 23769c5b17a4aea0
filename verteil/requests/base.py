"""
Base request interface.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar

from verteil.services.errors import ValidationError
from verteil.utils import as_list, dig, has

__all__ = [
    "BaseRequest",
    "as_list",
    "compact",
    "dig",
    "has",
    "require",
    "require_choice",
    "require_fields",
    "require_pattern",
]

REQUEST_PATH_PREFIX = "/entrygate/rest/request:"

PASSENGER_TYPES = ("ADT", "CHD", "INF")
CHANNELS = ("NDC", "Direct_Connect")
CARD_BRANDS = ("AX", "DS", "DC", "UP", "JC", "CA", "TP", "VI")

AIRLINE_CODE = re.compile(r"^[A-Z]{2}$")
PNR = re.compile(r"^[A-Z0-9]{4,8}$")
CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def require(condition: bool, message: str) -> None:
    if not condition:
        raise ValidationError(message)


def require_fields(data: Any, fields: Iterable[str], message: str) -> None:
    require(isinstance(data, dict) and all(has(data, f) for f in fields), message)


def require_choice(value: Any, choices: Iterable[str], message: str) -> None:
    require(value in tuple(choices), message)


def require_pattern(value: Any, pattern: re.Pattern, message: str) -> None:
    require(isinstance(value, str) and bool(pattern.match(value)), message)


def compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None or empty."""
    return {k: v for k, v in data.items() if v not in (None, "", [], {})}


class BaseRequest(ABC):
    """
    Abstract base class for all NDC requests.

    A request owns its raw params and knows:
    - which path and ``service`` header it is sent with
    - how to validate the params before anything is sent
    - how to build the JSON body the API expects
    """

    endpoint: ClassVar[str]
    service: ClassVar[str]

    def __init__(
        self,
        params: dict[str, Any],
        office_id: str | None = None,
        third_party_id: str | None = None,
    ):
        self.params = params or {}
        self.office_id = self.params.get("officeId") or office_id
        self.third_party_id = self.params.get("thirdPartyId") or third_party_id

    def path(self) -> str:
        return f"{REQUEST_PATH_PREFIX}{self.endpoint}"

    def headers(self) -> dict[str, str]:
        return compact(
            {
                "service": self.service,
                "ThirdpartyId": self.third_party_id,
                "OfficeId": self.office_id,
            }
        )

    def cache_scope(self) -> dict[str, str]:
        """Header IDs that change the response but may not appear in params."""
        return compact({"ThirdpartyId": self.third_party_id, "OfficeId": self.office_id})

    @abstractmethod
    def validate(self) -> None:
        """Raise ValidationError when params are structurally invalid."""
        ...

    @abstractmethod
    def to_wire_format(self) -> dict[str, Any]:
        """Build the JSON request body."""
        ...

    # Shared NDC checks

    @staticmethod
    def validate_anonymous_travelers(travelers: Any) -> None:
        for anonymous in as_list(travelers):
            ptc = dig(anonymous, "PTC", "value")
            require(ptc is not None, "PTC is required for anonymous travelers")
            require_choice(ptc, PASSENGER_TYPES, "Invalid PTC value. Must be ADT, CHD, or INF")

    @staticmethod
    def validate_recognized_traveler(traveler: Any) -> None:
        for field in ("ObjectKey", "PTC", "Name"):
            require(has(traveler, field), f"{field} is required for recognized travelers")
        for fqtv in as_list(dig(traveler, "FQTVs")):
            require_fields(fqtv, ("AirlineID", "Account"), "Invalid FQTV structure")

    def validate_travelers(self, travelers: Any) -> None:
        traveler_list = as_list(dig(travelers, "Traveler"))
        require(bool(traveler_list), "At least one Traveler is required")
        for traveler in traveler_list:
            if has(traveler, "AnonymousTraveler"):
                self.validate_anonymous_travelers(traveler["AnonymousTraveler"])
            elif has(traveler, "RecognizedTraveler"):
                self.validate_recognized_traveler(traveler["RecognizedTraveler"])
            else:
                raise ValidationError("Invalid Traveler structure")

    @staticmethod
    def validate_fare_list(data_lists: Any) -> None:
        groups = as_list(dig(data_lists, "FareList", "FareGroup"))
        require(bool(groups), "FareList with FareGroup is required in DataLists")
        for group in groups:
            require(
                has(group, "ListKey") and has(group, "FareBasisCode", "Code"),
                "Invalid FareGroup structure. ListKey and FareBasisCode are required",
            )

    @staticmethod
    def validate_offers(query: Any) -> None:
        offers = as_list(dig(query, "Offers", "Offer"))
        require(bool(offers), "At least one Offer is required")
        for offer in offers:
            require_fields(
                offer,
                ("OfferID", "OfferItemIDs"),
                "Invalid Offer structure. OfferID and OfferItemIDs are required",
            )
            require_fields(offer["OfferID"], ("Owner", "value"), "OfferID must contain Owner and value")
            channel = dig(offer, "OfferID", "Channel")
            if channel is not None:
                require_choice(channel, CHANNELS, "Invalid channel in OfferID")

    @staticmethod
    def validate_order_id(order_id: Any, context: str) -> None:
        require_fields(order_id, ("Owner", "value"), f"OrderID with Owner and value is required for {context}")
        require_pattern(
            order_id["Owner"], AIRLINE_CODE, "Invalid airline code format in OrderID Owner"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(endpoint={self.endpoint!r})"
