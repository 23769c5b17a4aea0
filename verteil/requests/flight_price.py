"""
FlightPrice request - reprice offers from a previous AirShopping response.

Params use the NDC names directly: DataLists, Query, Travelers,
ShoppingResponseID and optional Party, Qualifier, Parameters.
"""

from typing import Any

from verteil.requests.base import (
    CARD_BRANDS,
    PASSENGER_TYPES,
    BaseRequest,
    as_list,
    dig,
    has,
    require,
    require_choice,
    require_fields,
)

OPTIONAL_SECTIONS = ("Party", "Qualifier", "Parameters")


class FlightPriceRequest(BaseRequest):
    endpoint = "flightPrice"
    service = "FlightPrice"

    def validate(self) -> None:
        self._validate_data_lists()
        self._validate_query()
        self._validate_travelers()
        self._validate_shopping_response_id()
        if self.params.get("Qualifier") is not None:
            self._validate_qualifier()

    def _validate_data_lists(self) -> None:
        data_lists = self.params.get("DataLists")
        self.validate_fare_list(data_lists)

        if has(data_lists, "AnonymousTravelerList"):
            for traveler in as_list(dig(data_lists, "AnonymousTravelerList", "AnonymousTraveler")):
                require(
                    has(traveler, "ObjectKey") and has(traveler, "PTC", "value"),
                    "Invalid AnonymousTraveler structure",
                )
                require_choice(
                    traveler["PTC"]["value"], PASSENGER_TYPES, "Invalid PTC value for AnonymousTraveler"
                )

    def _validate_query(self) -> None:
        query = self.params.get("Query")
        require(
            has(query, "OriginDestination") and has(query, "Offers"),
            "OriginDestination and Offers are required in Query",
        )

        for od in as_list(query["OriginDestination"]):
            require(has(od, "Flight"), "Flight details are required in OriginDestination")
            for flight in as_list(od["Flight"]):
                require_fields(
                    flight,
                    ("SegmentKey", "Departure", "Arrival"),
                    "Invalid Flight structure in OriginDestination",
                )

        offers = as_list(dig(query, "Offers", "Offer"))
        require(bool(offers), "Offer details are required in Query")
        for offer in offers:
            require(
                has(offer, "OfferID", "Owner") and has(offer, "OfferID", "value"),
                "Invalid Offer structure. OfferID is required",
            )

    def _validate_travelers(self) -> None:
        travelers = as_list(dig(self.params, "Travelers", "Traveler"))
        require(bool(travelers), "At least one traveler is required")
        for traveler in travelers:
            if has(traveler, "AnonymousTraveler"):
                for anonymous in as_list(traveler["AnonymousTraveler"]):
                    require(has(anonymous, "PTC", "value"), "PTC is required for anonymous travelers")
            elif has(traveler, "RecognizedTraveler"):
                require_fields(
                    traveler["RecognizedTraveler"],
                    ("FQTVs", "ObjectKey", "PTC", "Name"),
                    "Invalid RecognizedTraveler structure",
                )

    def _validate_shopping_response_id(self) -> None:
        response_id = self.params.get("ShoppingResponseID")
        require(
            has(response_id, "Owner") and has(response_id, "ResponseID", "value"),
            "Invalid ShoppingResponseID structure",
        )

    def _validate_qualifier(self) -> None:
        qualifier = self.params["Qualifier"]
        if has(qualifier, "ProgramQualifiers"):
            require(
                has(qualifier, "ProgramQualifiers", "ProgramQualifier"),
                "Invalid ProgramQualifiers structure",
            )
        if has(qualifier, "PaymentCardQualifier"):
            card = qualifier["PaymentCardQualifier"]
            require_fields(card, ("cardBrandCode", "cardNumber"), "Invalid PaymentCardQualifier structure")
            require_choice(card["cardBrandCode"], CARD_BRANDS, "Invalid card brand code")

    def to_wire_format(self) -> dict[str, Any]:
        body = {
            "DataLists": self.params["DataLists"],
            "Query": self.params["Query"],
            "Travelers": self.params["Travelers"],
            "ShoppingResponseID": self.params["ShoppingResponseID"],
        }
        for section in OPTIONAL_SECTIONS:
            if self.params.get(section) is not None:
                body[section] = self.params[section]
        return body
