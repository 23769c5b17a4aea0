"""
Response wrappers - friendlier accessors over raw NDC response JSON.

The raw payload is kept as-is; properties only read from it.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from verteil.utils import as_list, dig


def _amount(node: Any) -> dict[str, Any]:
    return {"amount": dig(node, "value", default=0.0), "currency": dig(node, "Code", default="")}


def _taxes(price: Any) -> list[dict[str, Any]]:
    return [
        {"code": dig(tax, "TaxCode", default=""), **_amount(dig(tax, "Amount"))}
        for tax in as_list(dig(price, "Taxes", "Tax"))
    ]


class NdcResponse(BaseModel):
    """Base wrapper holding the raw response payload."""

    model_config = ConfigDict(frozen=True)

    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> "NdcResponse":
        return cls(raw=payload or {})

    @property
    def errors(self) -> list[dict[str, Any]]:
        return [
            {
                "code": dig(error, "Code"),
                "short_text": dig(error, "ShortText"),
                "message": dig(error, "value"),
                "owner": dig(error, "Owner"),
                "reason": dig(error, "Reason"),
            }
            for error in as_list(dig(self.raw, "Errors", "Error"))
        ]

    @property
    def warnings(self) -> list[dict[str, Any]]:
        return [
            {
                "code": dig(warning, "Code"),
                "short_text": dig(warning, "ShortText"),
                "message": dig(warning, "value"),
                "owner": dig(warning, "Owner"),
            }
            for warning in as_list(dig(self.raw, "Warnings", "Warning"))
        ]

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.raw


class AirShoppingResponse(NdcResponse):
    @property
    def offers(self) -> list[dict[str, Any]]:
        return as_list(dig(self.raw, "OffersGroup", "AirlineOffers"))

    @property
    def flight_segments(self) -> list[dict[str, Any]]:
        return as_list(dig(self.raw, "DataLists", "FlightSegmentList", "FlightSegment"))

    @property
    def baggage_allowance(self) -> list[dict[str, Any]] | dict[str, Any]:
        return dig(self.raw, "DataLists", "CheckedBagAllowanceList", default=[])

    @property
    def response_id(self) -> str:
        return dig(self.raw, "ShoppingResponseID", "ResponseID", "value", default="")


class FlightPriceResponse(NdcResponse):
    @staticmethod
    def _price(price: Any) -> dict[str, Any]:
        return {
            "total": _amount(dig(price, "TotalAmount")),
            "base": _amount(dig(price, "BaseAmount")),
            "taxes": _taxes(price),
            "fees": [
                {"code": dig(fee, "FeeCode", default=""), **_amount(dig(fee, "Amount"))}
                for fee in as_list(dig(price, "Fees", "Fee"))
            ],
        }

    @staticmethod
    def _baggage(baggage: Any) -> dict[str, Any]:
        allowance: dict[str, Any] = {}
        if dig(baggage, "WeightAllowance") is not None:
            allowance["weight"] = {
                "value": dig(baggage, "WeightAllowance", "MaximumWeight", "Value", default=0),
                "unit": dig(baggage, "WeightAllowance", "MaximumWeight", "UOM", default="KG"),
            }
        if dig(baggage, "PieceAllowance") is not None:
            allowance["pieces"] = {
                "quantity": dig(baggage, "PieceAllowance", "TotalQuantity", default=0),
                "type": dig(baggage, "PieceAllowance", "Type"),
            }
        return allowance

    def _fare_details(self, details: Any) -> list[dict[str, Any]]:
        return [
            {
                "fare_basis_code": dig(detail, "FareBasisCode", "Code", default=""),
                "fare_type": dig(detail, "FareTypeCode", default=""),
                "price_class_ref": dig(detail, "PriceClassRef", default=""),
                "conditions": [
                    {
                        "type": dig(rule, "Type", default=""),
                        "value": dig(rule, "Value", default=""),
                        "description": dig(rule, "Description"),
                    }
                    for rule in as_list(dig(detail, "FareRules", "FareRule"))
                ],
                "baggage_allowance": self._baggage(dig(detail, "BaggageAllowance")),
            }
            for detail in as_list(details)
        ]

    @property
    def priced_offers(self) -> list[dict[str, Any]]:
        offers = []
        for offer in as_list(dig(self.raw, "Response", "OffersGroup", "AirlineOffers")):
            offers.append(
                {
                    "owner": dig(offer, "Owner", default=""),
                    "offer_id": dig(offer, "OfferID", "value", default=""),
                    "items": [
                        {
                            "item_id": dig(item, "OfferItemID", "value", default=""),
                            "passenger_refs": dig(item, "PassengerRefs", default=[]),
                            "services": [
                                {
                                    "service_id": dig(service, "ServiceID", "value", default=""),
                                    "segment_refs": dig(service, "SegmentRefs", default=[]),
                                    "passenger_refs": dig(service, "PassengerRefs", default=[]),
                                    "type": dig(service, "ServiceDefinitionRef", "ServiceDefinitionID"),
                                }
                                for service in as_list(dig(item, "Services"))
                            ],
                            "price": self._price(dig(item, "Price")),
                            "fare_details": self._fare_details(dig(item, "FareDetail")),
                        }
                        for item in as_list(dig(offer, "OfferItems"))
                    ],
                    "total_price": self._price(dig(offer, "TotalPrice")),
                }
            )
        return offers

    @property
    def data_lists(self) -> dict[str, list[dict[str, Any]]]:
        lists = dig(self.raw, "Response", "DataLists", default={})
        return {
            "fare_components": [
                {
                    "fare_component_id": dig(c, "FareComponentID", "value", default=""),
                    "price_class_ref": dig(c, "PriceClassRef", default=""),
                    "segment_refs": dig(c, "SegmentRefs", default=[]),
                    "fare_amount": _amount(dig(c, "Price", "FareAmount")),
                }
                for c in as_list(dig(lists, "FareComponentList"))
            ],
            "penalty_components": [
                {
                    "type": dig(p, "PenaltyType", default=""),
                    "amount": _amount(dig(p, "Amount")),
                    "description": dig(p, "Description"),
                    "applicability": dig(p, "PenaltyApplicability"),
                }
                for p in as_list(dig(lists, "PenaltyList"))
            ],
            "service_definitions": [
                {
                    "id": dig(s, "ServiceDefinitionID", "value", default=""),
                    "code": dig(s, "ServiceCode", "Code", default=""),
                    "name": dig(s, "Name", default=""),
                    "description": dig(s, "Descriptions", 0, "Text", default=""),
                }
                for s in as_list(dig(lists, "ServiceDefinitionList"))
            ],
        }

    @property
    def correlation_id(self) -> str | None:
        return dig(self.raw, "Response", "CorrelationID")


class OrderViewResponse(NdcResponse):
    @property
    def order_id(self) -> str:
        return dig(self.raw, "Response", "Order", 0, "OrderID", "value", default="")

    @property
    def order_owner(self) -> str:
        return dig(self.raw, "Response", "Order", 0, "OrderID", "Owner", default="")

    @property
    def booking_references(self) -> list[dict[str, Any]]:
        return as_list(
            dig(self.raw, "Response", "Order", 0, "BookingReferences", "BookingReference")
        )

    @property
    def passengers(self) -> list[dict[str, Any]]:
        return as_list(dig(self.raw, "Response", "Passengers", "Passenger"))

    @property
    def total_price(self) -> float:
        return dig(
            self.raw, "Response", "Order", 0, "TotalOrderPrice", "SimpleCurrencyPrice", "value", default=0.0
        )

    @property
    def currency(self) -> str:
        return dig(
            self.raw, "Response", "Order", 0, "TotalOrderPrice", "SimpleCurrencyPrice", "Code", default=""
        )

    @property
    def success(self) -> bool:
        return not self.errors and bool(self.order_id)

    def to_dict(self) -> dict[str, Any]:
        """Summary view of the order."""
        if not self.raw:
            return {}
        return {
            "success": self.success,
            "order_id": self.order_id,
            "owner": self.order_owner,
            "booking_references": self.booking_references,
            "passengers": self.passengers,
            "total_price": self.total_price,
            "currency": self.currency,
            "response": dig(self.raw, "Response"),
            "errors": self.errors,
        }


class SeatAvailabilityResponse(NdcResponse):
    @property
    def available_seats(self) -> list[dict[str, Any]]:
        return as_list(dig(self.raw, "DataLists", "SeatList", "Seats"))

    @property
    def flight_segments(self) -> list[dict[str, Any]]:
        return as_list(dig(self.raw, "DataLists", "FlightSegmentList", "FlightSegment"))

    @property
    def cabin_layout(self) -> list[dict[str, Any]] | dict[str, Any]:
        return dig(self.raw, "Flights", 0, "Cabin", default=[])


class ServiceListResponse(NdcResponse):
    @property
    def services(self) -> list[dict[str, Any]]:
        services = []
        for service in as_list(dig(self.raw, "Response", "ServiceList")):
            price = dig(service, "Price")
            availability = dig(service, "Availability")
            services.append(
                {
                    "service_id": dig(service, "ServiceID", "value", default=""),
                    "type": dig(service, "ServiceType", default=""),
                    "name": dig(service, "Name", default=""),
                    "description": dig(service, "Descriptions", 0, "Text", default=""),
                    "price": {
                        **_amount(dig(price, "TotalAmount")),
                        "base_amount": dig(price, "BaseAmount", "value", default=0.0),
                        "taxes": _taxes(price),
                    },
                    "segment_refs": dig(service, "SegmentRefs", default=[]),
                    "passenger_refs": dig(service, "PassengerRefs", default=[]),
                    "availability": {
                        "status": dig(availability, "AvailabilityStatus", default=""),
                        "quantity": dig(availability, "AvailableQuantity"),
                        "limitations": [
                            {
                                "type": dig(limit, "LimitationType", default=""),
                                "value": dig(limit, "Value", default=""),
                                "description": dig(limit, "Description"),
                            }
                            for limit in as_list(dig(availability, "Limitations", "Limitation"))
                        ],
                    },
                    "media": [
                        {
                            "id": dig(media, "ID", default=""),
                            "url": dig(media, "URI", default=""),
                            "type": dig(media, "MediaType", default=""),
                        }
                        for media in as_list(dig(service, "MediaObjects"))
                    ],
                }
            )
        return services
