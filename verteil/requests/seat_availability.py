"""
SeatAvailability request - seat maps before (pre) or after (post) booking.

The path carries the type: ``request:preSeatAvailability`` or
``request:postSeatAvailability``.
"""

from typing import Any

from verteil.requests.base import (
    REQUEST_PATH_PREFIX,
    BaseRequest,
    as_list,
    dig,
    has,
    require,
    require_choice,
    require_fields,
)

SEAT_REQUEST_TYPES = ("pre", "post")


class SeatAvailabilityRequest(BaseRequest):
    endpoint = "seatAvailability"
    service = "SeatAvailability"

    def __init__(self, params: dict[str, Any], office_id: str | None = None, third_party_id: str | None = None):
        super().__init__(params, office_id, third_party_id)
        self.request_type = str(self.params.get("type", "pre")).lower()

    def path(self) -> str:
        return f"{REQUEST_PATH_PREFIX}{self.request_type}SeatAvailability"

    def validate(self) -> None:
        require_choice(
            self.request_type, SEAT_REQUEST_TYPES, "Invalid seat availability type. Must be pre or post"
        )
        query = self.params.get("query")

        if self.request_type == "post":
            require(
                has(query, "OrderID", "Owner") and has(query, "OrderID", "value"),
                "OrderID with Owner and value is required for post seat availability",
            )
            return

        require(
            has(query, "OriginDestination") and has(query, "Offers"),
            "OriginDestination and Offers are required in Query for pre seat availability",
        )
        self.validate_offers(query)
        self._validate_pre_request()

    def _validate_pre_request(self) -> None:
        data_lists = self.params.get("dataLists")
        if has(data_lists, "FareList"):
            self.validate_fare_list(data_lists)
        if has(data_lists, "FlightSegmentList"):
            segments = as_list(dig(data_lists, "FlightSegmentList", "FlightSegment"))
            require(bool(segments), "FlightSegment is required in FlightSegmentList")
            for segment in segments:
                require_fields(
                    segment, ("SegmentKey", "Departure", "Arrival"), "Invalid FlightSegment structure"
                )

        if self.params.get("travelers") is not None:
            self.validate_travelers(self.params["travelers"])

        shopping_response_id = self.params.get("shoppingResponseId")
        if shopping_response_id is not None:
            require(
                has(shopping_response_id, "ResponseID", "value"),
                "Invalid ShoppingResponseID structure",
            )

    def to_wire_format(self) -> dict[str, Any]:
        query = self.params["query"]
        if self.request_type == "post":
            return {"Query": {"OrderID": query["OrderID"]}}

        body: dict[str, Any] = {"Query": query}
        for param, section in (
            ("dataLists", "DataLists"),
            ("travelers", "Travelers"),
            ("shoppingResponseId", "ShoppingResponseID"),
        ):
            if self.params.get(param) is not None:
                body[section] = self.params[param]
        return body
