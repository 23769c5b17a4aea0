"""
OrderRetrieve request - fetch an existing order by airline and PNR.
"""

from typing import Any

from verteil.requests.base import (
    AIRLINE_CODE,
    CHANNELS,
    PNR,
    BaseRequest,
    compact,
    require,
    require_choice,
    require_pattern,
)


class OrderRetrieveRequest(BaseRequest):
    """
    Params:
        owner: 2-letter airline code owning the order
        value: PNR / booking reference
        channel: NDC or Direct_Connect (optional)
        filters: extra Query.Filters entries (optional)
    """

    endpoint = "orderRetrieve"
    service = "OrderRetrieve"

    def validate(self) -> None:
        owner = self.params.get("owner")
        require(bool(owner), "Owner (Airline code) is required")
        require_pattern(owner, AIRLINE_CODE, "Invalid airline code format. Must be a 2-letter IATA code")

        value = self.params.get("value")
        require(bool(value), "PNR/Booking reference is required")
        require_pattern(
            value, PNR, "Invalid PNR/Booking reference format. Must be 4-8 alphanumeric characters"
        )

        channel = self.params.get("channel")
        if channel is not None:
            require_choice(channel, CHANNELS, f"Invalid channel. Must be one of: {', '.join(CHANNELS)}")

    def to_wire_format(self) -> dict[str, Any]:
        order_id = compact(
            {
                "Owner": self.params["owner"],
                "value": self.params["value"],
                "Channel": self.params.get("channel"),
            }
        )
        return {"Query": {"Filters": {"OrderID": order_id, **(self.params.get("filters") or {})}}}
