"""
OrderCreate request - book priced offers.

Params:
    query:
        orderItems: {shoppingResponse: {owner, responseId, offers}, offerItem: [...]}
        dataLists: {fares: [{listKey, code}]}
        passengers: [{objectKey, passengerType, gender, name, contacts?, document?}]
    party: {corporateCode, contact?}
    payments: [{amount, currency, card | cash | other}]
    commission: [{amount, currency, code}]
    metadata: passed through as the NDC Metadata section

``ThirdpartyId`` falls back to the shopping response owner.
"""

import re
from typing import Any

from verteil.requests.base import (
    AIRLINE_CODE,
    CARD_BRANDS,
    CURRENCY_CODE,
    ISO_DATE,
    PASSENGER_TYPES,
    BaseRequest,
    as_list,
    compact,
    dig,
    has,
    require,
    require_choice,
    require_fields,
    require_pattern,
)
from verteil.services.errors import ValidationError

DOCUMENT_TYPES = ("PT", "NI", "ID", "CR")
ADDRESS_FIELDS = ("street", "postalCode", "city", "countryCode")
FLIGHT_FIELDS = ("segmentKey", "departure", "arrival", "airline", "flightNumber")

EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CARD_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])\d{2}$")
CVV = re.compile(r"^\d{3,4}$")
CORPORATE_CODE = re.compile(r"^[A-Z]{2}(/[A-Z0-9]*)?(/[A-Z0-9]+)?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class OrderCreateRequest(BaseRequest):
    endpoint = "orderCreate"
    service = "OrderCreate"

    def __init__(self, params: dict[str, Any], office_id: str | None = None, third_party_id: str | None = None):
        super().__init__(params, office_id, third_party_id)
        if not self.params.get("thirdPartyId"):
            owner = dig(self.params, "query", "orderItems", "shoppingResponse", "owner")
            self.third_party_id = owner or self.third_party_id

    # Validation

    def validate(self) -> None:
        query = self.params.get("query")
        require_fields(
            query,
            ("orderItems", "dataLists", "passengers"),
            "Query must contain orderItems, dataLists, and passengers",
        )
        self._validate_order_items(query["orderItems"])
        self._validate_data_lists(query["dataLists"])
        self._validate_passengers(query["passengers"])

        if self.params.get("party") is not None:
            self._validate_party(self.params["party"])
        if self.params.get("payments") is not None:
            self._validate_payments(self.params["payments"])
        if self.params.get("commission") is not None:
            self._validate_commission(self.params["commission"])

    def _validate_order_items(self, order_items: dict[str, Any]) -> None:
        require_fields(
            order_items,
            ("shoppingResponse", "offerItem"),
            "OrderItems must contain shoppingResponse and offerItem",
        )
        require_fields(
            order_items["shoppingResponse"],
            ("owner", "responseId", "offers"),
            "Invalid shopping response structure",
        )

        for item in as_list(order_items["offerItem"]):
            require_fields(item, ("offerId", "type"), "Each offer item must contain offerId and type")
            if item["type"] == "flight":
                self._validate_flight_item(item)
            elif item["type"] == "seat":
                self._validate_seat_item(item)
            elif item["type"] == "ancillary":
                require_fields(
                    item, ("serviceCode", "price"), "Ancillary offer item must contain serviceCode and price"
                )

    @staticmethod
    def _validate_flight_item(item: dict[str, Any]) -> None:
        require_fields(
            item, ("price", "originDestination"), "Flight offer item must contain price and originDestination"
        )
        for od in as_list(item["originDestination"]):
            require(has(od, "flights"), "Origin destination must contain flights")
            for flight in as_list(od["flights"]):
                for field in FLIGHT_FIELDS:
                    require(has(flight, field), f"Missing required flight field: {field}")

    @staticmethod
    def _validate_seat_item(item: dict[str, Any]) -> None:
        require_fields(
            item, ("associations", "location"), "Seat offer item must contain associations and location"
        )
        for association in as_list(item["associations"]):
            require_fields(
                association,
                ("segmentRef", "travelerRef"),
                "Seat association must contain segmentRef and travelerRef",
            )
        require_fields(item["location"], ("column", "row"), "Seat location must contain column and row")

    @staticmethod
    def _validate_data_lists(data_lists: dict[str, Any]) -> None:
        require(has(data_lists, "fares"), "DataLists must contain fare information")
        for fare in as_list(data_lists["fares"]):
            require_fields(fare, ("listKey", "code"), "Each fare must contain listKey and code")

    def _validate_passengers(self, passengers: list[dict[str, Any]]) -> None:
        require(bool(as_list(passengers)), "At least one passenger is required")
        for passenger in as_list(passengers):
            require_fields(
                passenger, ("objectKey", "passengerType", "gender", "name"), "Invalid passenger structure"
            )
            require_choice(
                passenger["passengerType"], PASSENGER_TYPES, "Invalid passenger type. Must be ADT, CHD, or INF"
            )
            require_fields(
                passenger["name"],
                ("given", "surname"),
                "Passenger name must contain given name and surname",
            )
            if passenger.get("contacts") is not None:
                self._validate_contacts(passenger["contacts"])
            if passenger.get("document") is not None:
                self._validate_document(passenger["document"])

    @staticmethod
    def _validate_contacts(contacts: dict[str, Any]) -> None:
        require_fields(
            contacts, ("phone", "email", "address"), "Passenger contacts must contain phone, email, and address"
        )
        require_fields(
            contacts["phone"], ("countryCode", "number"), "Phone contact must contain countryCode and number"
        )
        require_pattern(contacts["email"], EMAIL, "Invalid email format")
        require_fields(
            contacts["address"], ADDRESS_FIELDS, "Address must contain street, postalCode, city, and countryCode"
        )

    @staticmethod
    def _validate_document(document: dict[str, Any]) -> None:
        for field in ("type", "number", "issuingCountry"):
            require(has(document, field), f"Document must contain {field}")
        require_choice(document["type"], DOCUMENT_TYPES, "Invalid document type. Must be PT, NI, ID, or CR")
        require_pattern(document["issuingCountry"], AIRLINE_CODE, "Invalid country code format in document")
        if document.get("expiryDate") is not None:
            require_pattern(
                document["expiryDate"], ISO_DATE, "Invalid expiry date format. Must be YYYY-MM-DD"
            )

    @staticmethod
    def _validate_party(party: dict[str, Any]) -> None:
        require(has(party, "corporateCode"), "Corporate code is required in party information")
        require_pattern(
            party["corporateCode"],
            CORPORATE_CODE,
            "Invalid corporate code format. Must be AIRLINE_CODE/DEALCODE/CLID, "
            "AIRLINE_CODE/DEALCODE or AIRLINE_CODE//CLID",
        )
        contact = party.get("contact")
        if contact is not None:
            require_fields(
                contact,
                ("email", "phoneCountryCode", "phoneNumber"),
                "Party contact must contain email, phoneCountryCode, and phoneNumber",
            )
            require_pattern(contact["email"], EMAIL, "Invalid party contact email format")

    def _validate_payments(self, payments: list[dict[str, Any]]) -> None:
        for payment in as_list(payments):
            require_fields(payment, ("amount", "currency"), "Payment must contain amount and currency")
            require(
                _is_number(payment["amount"]) and payment["amount"] > 0,
                "Payment amount must be a positive number",
            )
            require_pattern(payment["currency"], CURRENCY_CODE, "Invalid currency code format")

            if payment.get("card") is not None:
                self._validate_card(payment["card"])
            elif payment.get("cash") is not None:
                require(isinstance(payment["cash"], bool), "Cash payment indicator must be a boolean")
            elif payment.get("other") is not None:
                require(has(payment["other"], "remarks"), "Other payment method must contain remarks")
            else:
                raise ValidationError("Invalid payment method. Must be card, cash, or other")

    @staticmethod
    def _validate_card(card: dict[str, Any]) -> None:
        for field in ("number", "expiryDate", "brand"):
            require(has(card, field), f"Card must contain {field}")
        require_choice(card["brand"], CARD_BRANDS, "Invalid card brand")
        require_pattern(card["expiryDate"], CARD_EXPIRY, "Invalid card expiry date format. Must be MMYY")
        if card.get("cvv") is not None:
            require_pattern(str(card["cvv"]), CVV, "Invalid CVV format")
        if card.get("billingAddress") is not None:
            for field in ADDRESS_FIELDS:
                require(has(card["billingAddress"], field), f"Billing address must contain {field}")

    @staticmethod
    def _validate_commission(commission: list[dict[str, Any]]) -> None:
        for entry in as_list(commission):
            require_fields(
                entry, ("amount", "currency", "code"), "Commission must contain amount, currency, and code"
            )
            require(
                _is_number(entry["amount"]) and entry["amount"] >= 0,
                "Commission amount must be a non-negative number",
            )
            require_pattern(entry["currency"], CURRENCY_CODE, "Invalid commission currency code format")

    # Wire format

    @staticmethod
    def _price(price: dict[str, Any]) -> dict[str, Any]:
        currency = price.get("currency")
        return compact(
            {
                "BaseAmount": {"value": price.get("baseAmount", 0), "Code": currency},
                "Taxes": {"Total": {"value": price.get("taxAmount", 0), "Code": currency}},
            }
        )

    @staticmethod
    def _flight(flight: dict[str, Any]) -> dict[str, Any]:
        departure = flight["departure"]
        arrival = flight["arrival"]
        return compact(
            {
                "SegmentKey": flight["segmentKey"],
                "Departure": compact(
                    {
                        "AirportCode": {"value": departure.get("airport")},
                        "Date": departure.get("date"),
                        "Time": departure.get("time"),
                    }
                ),
                "Arrival": compact(
                    {
                        "AirportCode": {"value": arrival.get("airport")},
                        "Date": arrival.get("date"),
                        "Time": arrival.get("time"),
                    }
                ),
                "MarketingCarrier": {
                    "AirlineID": {"value": flight["airline"]},
                    "FlightNumber": {"value": str(flight["flightNumber"])},
                },
                "ClassOfService": (
                    {"Code": {"value": flight["classOfService"]}} if flight.get("classOfService") else None
                ),
            }
        )

    def _offer_item_type(self, item: dict[str, Any]) -> dict[str, Any]:
        if item["type"] == "flight":
            return {
                "DetailedFlightItem": [
                    {
                        "Price": self._price(item["price"]),
                        "OriginDestination": [
                            {"Flight": [self._flight(f) for f in as_list(od["flights"])]}
                            for od in as_list(item["originDestination"])
                        ],
                    }
                ]
            }
        if item["type"] == "seat":
            location = item["location"]
            return {
                "SeatItem": [
                    compact(
                        {
                            "Price": self._price(item.get("price") or {}),
                            "SeatAssociation": [
                                {
                                    "SegmentReferences": {"value": a["segmentRef"]},
                                    "TravelerReference": a["travelerRef"],
                                }
                                for a in as_list(item["associations"])
                            ],
                            "Location": {
                                "Column": location["column"],
                                "Row": {"Number": {"value": str(location["row"])}},
                            },
                        }
                    )
                ]
            }
        if item["type"] == "ancillary":
            price = item["price"]
            return {
                "OtherItem": [
                    {
                        "refs": as_list(item["serviceCode"]),
                        "Price": {
                            "SimpleCurrencyPrice": {
                                "value": price.get("amount", 0),
                                "Code": price.get("currency"),
                            }
                        },
                    }
                ]
            }
        return {}

    def _order_items(self, order_items: dict[str, Any]) -> dict[str, Any]:
        shopping_response = order_items["shoppingResponse"]
        return {
            "ShoppingResponse": {
                "Owner": shopping_response["owner"],
                "ResponseID": {"value": shopping_response["responseId"]},
                "Offers": {
                    "Offer": [
                        {
                            "OfferID": compact(
                                {
                                    "Owner": offer.get("owner"),
                                    "Channel": offer.get("channel", "NDC"),
                                    "ObjectKey": offer.get("objectKey"),
                                    "value": offer.get("offerId"),
                                }
                            ),
                            "OfferItems": {
                                "OfferItem": [
                                    {
                                        "OfferItemID": compact(
                                            {"Owner": i.get("owner"), "value": i.get("offerId")}
                                        )
                                    }
                                    for i in as_list(offer.get("offerItems"))
                                ]
                            },
                        }
                        for offer in as_list(dig(shopping_response, "offers", "Offer"))
                    ]
                },
            },
            "OfferItem": [
                compact(
                    {
                        "OfferItemID": compact(
                            {
                                "Owner": item.get("owner"),
                                "value": item["offerId"],
                                "Channel": item.get("channel", "NDC"),
                            }
                        ),
                        "OfferItemType": self._offer_item_type(item),
                    }
                )
                for item in as_list(order_items["offerItem"])
            ],
        }

    @staticmethod
    def _passenger(passenger: dict[str, Any]) -> dict[str, Any]:
        name = passenger["name"]
        contacts = passenger.get("contacts")
        document = passenger.get("document")
        return compact(
            {
                "ObjectKey": passenger["objectKey"],
                "PTC": {"value": passenger["passengerType"]},
                "Gender": {"value": passenger["gender"]},
                "Name": compact(
                    {
                        "Given": [{"value": g} for g in as_list(name["given"])],
                        "Surname": {"value": name["surname"]},
                        "Title": name.get("title"),
                    }
                ),
                "Contacts": (
                    {
                        "Contact": [
                            {
                                "PhoneContact": {
                                    "Number": [
                                        {
                                            "CountryCode": contacts["phone"]["countryCode"],
                                            "value": contacts["phone"]["number"],
                                        }
                                    ]
                                },
                                "EmailContact": {"Address": {"value": contacts["email"]}},
                                "AddressContact": {
                                    "Street": [contacts["address"]["street"]],
                                    "PostalCode": contacts["address"]["postalCode"],
                                    "CityName": contacts["address"]["city"],
                                    "CountryCode": {"value": contacts["address"]["countryCode"]},
                                },
                            }
                        ]
                    }
                    if contacts
                    else None
                ),
                "PassengerIDInfo": (
                    {
                        "PassengerDocument": [
                            compact(
                                {
                                    "Type": document["type"],
                                    "ID": document["number"],
                                    "CountryOfIssuance": document["issuingCountry"],
                                    "DateOfExpiration": document.get("expiryDate"),
                                }
                            )
                        ]
                    }
                    if document
                    else None
                ),
            }
        )

    @staticmethod
    def _payment(payment: dict[str, Any]) -> dict[str, Any]:
        if payment.get("card") is not None:
            card = payment["card"]
            method = {
                "PaymentCard": compact(
                    {
                        "CardNumber": {"value": card["number"]},
                        "SeriesCode": {"value": card["cvv"]} if card.get("cvv") else None,
                        "CardCode": card["brand"],
                        "EffectiveExpireDate": {"Expiration": card["expiryDate"]},
                    }
                )
            }
        elif payment.get("cash") is not None:
            method = {"Cash": {"CashInd": payment["cash"]}}
        else:
            method = {"Other": {"Remarks": {"Remark": [{"value": r} for r in as_list(payment["other"]["remarks"])]}}}

        return {
            "Amount": {"value": payment["amount"], "Code": payment["currency"]},
            "Method": method,
        }

    def to_wire_format(self) -> dict[str, Any]:
        query = self.params["query"]
        body_query: dict[str, Any] = {
            "OrderItems": self._order_items(query["orderItems"]),
            "DataLists": {
                "FareList": {
                    "FareGroup": [
                        compact(
                            {
                                "ListKey": fare["listKey"],
                                "FareBasisCode": {"Code": fare["code"]},
                                "refs": fare.get("refs"),
                            }
                        )
                        for fare in as_list(query["dataLists"]["fares"])
                    ]
                }
            },
            "Passengers": {"Passenger": [self._passenger(p) for p in as_list(query["passengers"])]},
        }

        if self.params.get("payments"):
            body_query["Payments"] = {"Payment": [self._payment(p) for p in as_list(self.params["payments"])]}
        if self.params.get("commission"):
            body_query["Commission"] = self.params["commission"]
        if self.params.get("metadata"):
            body_query["Metadata"] = self.params["metadata"]

        body: dict[str, Any] = {"Query": body_query}
        party = self.params.get("party")
        if party:
            body["Party"] = {"Sender": {"CorporateSender": {"CorporateCode": party["corporateCode"]}}}
        return body
