"""
ServiceList request - ancillaries available before (pre) or after (post) booking.
"""

from typing import Any

from verteil.requests.base import (
    ISO_DATE,
    REQUEST_PATH_PREFIX,
    BaseRequest,
    as_list,
    dig,
    has,
    require,
    require_choice,
    require_fields,
    require_pattern,
)

SERVICE_LIST_TYPES = ("pre", "post")


class ServiceListRequest(BaseRequest):
    """
    Params:
        type: "pre" (default) or "post"
        query: OriginDestination + Offers (pre) or OrderID (post)
        travelers, shoppingResponseId: pre only
        party: {Sender: {CorporateSender: {CorporateCode}}}
        qualifier: {ProgramQualifiers: {ProgramQualifier: [...]}}
    """

    endpoint = "serviceList"
    service = "ServiceList"

    def __init__(self, params: dict[str, Any], office_id: str | None = None, third_party_id: str | None = None):
        super().__init__(params, office_id, third_party_id)
        self.request_type = str(self.params.get("type", "pre")).lower()

    def path(self) -> str:
        return f"{REQUEST_PATH_PREFIX}{self.request_type}ServiceList"

    def validate(self) -> None:
        require_choice(self.request_type, SERVICE_LIST_TYPES, "Invalid service list type. Must be pre or post")
        query = self.params.get("query")

        if self.request_type == "post":
            self.validate_order_id(dig(query, "OrderID"), "post service list")
        else:
            require(
                has(query, "OriginDestination") and has(query, "Offers"),
                "OriginDestination and Offers are required in Query for pre service list",
            )
            self._validate_origin_destinations(query)
            self.validate_offers(query)
            if self.params.get("travelers") is not None:
                self.validate_travelers(self.params["travelers"])
                self._validate_ages(self.params["travelers"])
            shopping_response_id = self.params.get("shoppingResponseId")
            if shopping_response_id is not None:
                require(
                    has(shopping_response_id, "ResponseID", "value"),
                    "Invalid ShoppingResponseID structure",
                )

        if self.params.get("party") is not None:
            require(
                has(self.params["party"], "Sender", "CorporateSender"), "Invalid Party structure"
            )
            require(
                has(self.params["party"], "Sender", "CorporateSender", "CorporateCode"),
                "CorporateCode is required in CorporateSender",
            )

        if self.params.get("qualifier") is not None:
            self._validate_qualifier(self.params["qualifier"])

    @staticmethod
    def _validate_origin_destinations(query: dict[str, Any]) -> None:
        for od in as_list(query["OriginDestination"]):
            require(has(od, "Flight"), "Flight is required in OriginDestination")
            for flight in as_list(od["Flight"]):
                require_fields(flight, ("SegmentKey", "Departure", "Arrival"), "Invalid Flight structure")
                require(
                    has(flight, "Departure", "AirportCode", "value")
                    and has(flight, "Arrival", "AirportCode", "value"),
                    "Airport codes are required for Departure and Arrival",
                )
                require(has(flight, "Departure", "Date"), "Departure date is required")

    @staticmethod
    def _validate_ages(travelers: dict[str, Any]) -> None:
        for traveler in as_list(dig(travelers, "Traveler")):
            for anonymous in as_list(dig(traveler, "AnonymousTraveler")):
                age = dig(anonymous, "Age")
                if age is None:
                    continue
                if has(age, "Value"):
                    value = dig(age, "Value", "value")
                    require(
                        isinstance(value, (int, float))
                        or (isinstance(value, str) and value.replace(".", "", 1).isdigit()),
                        "Invalid age value",
                    )
                if has(age, "BirthDate"):
                    require_pattern(
                        dig(age, "BirthDate", "value"),
                        ISO_DATE,
                        "Invalid birth date format. Must be YYYY-MM-DD",
                    )

    @staticmethod
    def _validate_qualifier(qualifier: dict[str, Any]) -> None:
        if not has(qualifier, "ProgramQualifiers"):
            return
        programs = dig(qualifier, "ProgramQualifiers", "ProgramQualifier")
        require(programs is not None, "Invalid ProgramQualifiers structure")
        for program in as_list(programs):
            discount = dig(program, "DiscountProgramQualifier")
            require(discount is not None, "DiscountProgramQualifier is required")
            for field in ("Account", "AssocCode", "Name"):
                require(has(discount, field, "value"), f"{field} is required in DiscountProgramQualifier")

    def to_wire_format(self) -> dict[str, Any]:
        query = self.params["query"]
        if self.request_type == "post":
            return {"Query": {"OrderID": query["OrderID"]}}

        body: dict[str, Any] = {"Query": query}
        for param, section in (
            ("travelers", "Travelers"),
            ("shoppingResponseId", "ShoppingResponseID"),
            ("party", "Party"),
            ("qualifier", "Qualifier"),
        ):
            if self.params.get(param) is not None:
                body[section] = self.params[param]
        return body
