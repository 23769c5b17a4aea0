"""
AirShopping request - flight search.

Params:
    coreQuery.originDestinations: [{departureAirport, arrivalAirport, departureDate, key}]
    travelers: [{passengerType, frequentFlyer?, objectKey?, name?}]
    preference: {cabin?, fareTypes?}
    responseParameters: {SortOrder?, ShopResultPreference?}
    enableGDS: bool
"""

from typing import Any

from verteil.requests.base import (
    PASSENGER_TYPES,
    BaseRequest,
    as_list,
    compact,
    dig,
    has,
    require,
    require_choice,
)

CABIN_CODES = ("Y", "W", "C", "F")
FARE_TYPES = ("PUBL", "FLEX", "PVT", "IT", "CB", "STU", "MR", "HR", "VFR", "LBR", "CRU")
SORT_ORDERS = ("ASCENDING", "DESCENDING")
SORT_PARAMETERS = ("STOP", "PRICE", "DEPARTURE_TIME")
SHOP_RESULT_PREFERENCES = ("OPTIMIZED", "FULL", "BEST")

DEFAULT_RESPONSE_PARAMETERS = {
    "SortOrder": [{"Order": "ASCENDING", "Parameter": "PRICE"}],
    "ShopResultPreference": "OPTIMIZED",
}


class AirShoppingRequest(BaseRequest):
    endpoint = "airShopping"
    service = "AirShopping"

    def validate(self) -> None:
        self._validate_core_query()
        self._validate_travelers()
        if self.params.get("preference"):
            self._validate_preference()
        if self.params.get("responseParameters"):
            self._validate_response_parameters()

    def _validate_core_query(self) -> None:
        origin_destinations = dig(self.params, "coreQuery", "originDestinations")
        require(bool(origin_destinations), "originDestinations is required in coreQuery")
        for od in as_list(origin_destinations):
            require(
                all(has(od, f) for f in ("departureAirport", "arrivalAirport", "departureDate", "key")),
                "Invalid originDestination structure. "
                "Required: departureAirport, arrivalAirport, departureDate, key",
            )

    def _validate_travelers(self) -> None:
        travelers = as_list(self.params.get("travelers"))
        require(bool(travelers), "At least one traveler is required")
        for traveler in travelers:
            require(has(traveler, "passengerType"), "passengerType is required for each traveler")
            require_choice(
                traveler["passengerType"],
                PASSENGER_TYPES,
                "Invalid passengerType. Must be ADT, CHD, or INF",
            )

    def _validate_preference(self) -> None:
        preference = self.params["preference"]
        if "cabin" in preference:
            require_choice(preference["cabin"], CABIN_CODES, "Invalid cabin code. Must be Y, W, C, or F")
        for fare_type in as_list(preference.get("fareTypes")):
            require_choice(fare_type, FARE_TYPES, f"Invalid fare type: {fare_type}")

    def _validate_response_parameters(self) -> None:
        parameters = self.params["responseParameters"]
        for sort in as_list(parameters.get("SortOrder")):
            require(
                has(sort, "Order") and has(sort, "Parameter"),
                "Sort order must contain Order and Parameter",
            )
            require_choice(sort["Order"], SORT_ORDERS, "Invalid sort order. Must be ASCENDING or DESCENDING")
            require_choice(
                sort["Parameter"],
                SORT_PARAMETERS,
                "Invalid sort parameter. Must be STOP, PRICE, or DEPARTURE_TIME",
            )
        if "ShopResultPreference" in parameters:
            require_choice(
                parameters["ShopResultPreference"],
                SHOP_RESULT_PREFERENCES,
                "Invalid ShopResultPreference. Must be OPTIMIZED, FULL, or BEST",
            )

    @staticmethod
    def _origin_destination(od: dict[str, Any]) -> dict[str, Any]:
        return {
            "Departure": {
                "AirportCode": {"value": od["departureAirport"]},
                "Date": od["departureDate"],
            },
            "Arrival": {"AirportCode": {"value": od["arrivalAirport"]}},
            "OriginDestinationKey": od["key"],
        }

    @staticmethod
    def _traveler(traveler: dict[str, Any]) -> dict[str, Any]:
        frequent_flyer = traveler.get("frequentFlyer")
        if not frequent_flyer:
            return {"AnonymousTraveler": [{"PTC": {"value": traveler["passengerType"]}}]}

        name = traveler.get("name") or {}
        return {
            "RecognizedTraveler": compact(
                {
                    "FQTVs": [
                        {
                            "AirlineID": {"value": frequent_flyer.get("airlineCode")},
                            "Account": {"Number": {"value": frequent_flyer.get("accountNumber")}},
                        }
                    ],
                    "ObjectKey": traveler.get("objectKey"),
                    "PTC": {"value": traveler["passengerType"]},
                    "Name": compact(
                        {
                            "Given": [{"value": given} for given in as_list(name.get("given"))],
                            "Surname": {"value": name["surname"]} if name.get("surname") else None,
                            "Title": name.get("title"),
                        }
                    ),
                }
            )
        }

    def to_wire_format(self) -> dict[str, Any]:
        preference = self.params.get("preference") or {}
        cabin = preference.get("cabin")

        return compact(
            {
                "CoreQuery": {
                    "OriginDestinations": {
                        "OriginDestination": [
                            self._origin_destination(od)
                            for od in as_list(dig(self.params, "coreQuery", "originDestinations"))
                        ]
                    }
                },
                "Travelers": {
                    "Traveler": [self._traveler(t) for t in as_list(self.params.get("travelers"))]
                },
                "Preference": compact(
                    {
                        "CabinPreferences": {"CabinType": [{"Code": cabin}]} if cabin else None,
                        "FarePreferences": {
                            "Types": {
                                "Type": [
                                    {"Code": code}
                                    for code in as_list(preference.get("fareTypes") or ["PUBL"])
                                ]
                            }
                        },
                    }
                ),
                "ResponseParameters": self.params.get("responseParameters")
                or DEFAULT_RESPONSE_PARAMETERS,
                "EnableGDS": self.params.get("enableGDS"),
            }
        )
