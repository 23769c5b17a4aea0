import copy

import pytest

from verteil.requests import (
    AirShoppingRequest,
    FlightPriceRequest,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderRetrieveRequest,
    RequestRegistry,
    SeatAvailabilityRequest,
    ServiceListRequest,
)
from verteil.services.errors import ConfigurationError, ValidationError

OFFER_QUERY = {
    "OriginDestination": [
        {
            "Flight": [
                {
                    "SegmentKey": "SEG1",
                    "Departure": {"AirportCode": {"value": "SIN"}, "Date": "2026-12-01"},
                    "Arrival": {"AirportCode": {"value": "LHR"}},
                }
            ]
        }
    ],
    "Offers": {
        "Offer": [
            {
                "OfferID": {"Owner": "SQ", "value": "OFFER-1", "Channel": "NDC"},
                "OfferItemIDs": {"OfferItemID": [{"value": "ITEM-1"}]},
            }
        ]
    },
}

ANONYMOUS_TRAVELERS = {"Traveler": [{"AnonymousTraveler": [{"PTC": {"value": "ADT"}}]}]}
FARE_LIST = {"FareList": {"FareGroup": [{"ListKey": "FG1", "FareBasisCode": {"Code": "YOW"}}]}}


def with_change(params: dict, path: tuple, value) -> dict:
    """Deep copy of ``params`` with one nested key replaced (or removed when value is ...)."""
    changed = copy.deepcopy(params)
    target = changed
    for key in path[:-1]:
        target = target[key]
    if value is ...:
        del target[path[-1]]
    else:
        target[path[-1]] = value
    return changed


class TestBaseRequest:
    def test_path_and_headers(self):
        request = OrderRetrieveRequest({"owner": "SQ", "value": "ABC123"}, office_id="OFF1", third_party_id="SQ")

        assert request.path() == "/entrygate/rest/request:orderRetrieve"
        assert request.headers() == {"service": "OrderRetrieve", "ThirdpartyId": "SQ", "OfficeId": "OFF1"}

    def test_ids_from_params_take_precedence(self):
        request = OrderRetrieveRequest(
            {"owner": "SQ", "value": "ABC123", "officeId": "OFF2", "thirdPartyId": "TR"},
            office_id="OFF1",
            third_party_id="SQ",
        )
        assert request.headers()["OfficeId"] == "OFF2"
        assert request.headers()["ThirdpartyId"] == "TR"

    def test_missing_ids_are_omitted(self):
        assert OrderRetrieveRequest({}).headers() == {"service": "OrderRetrieve"}


class TestAirShopping:
    def test_valid(self, air_shopping_params):
        AirShoppingRequest(air_shopping_params).validate()

    @pytest.mark.parametrize(
        "path, value, message",
        [
            (("coreQuery", "originDestinations"), [], "originDestinations is required"),
            (("coreQuery", "originDestinations", 0, "key"), ..., "Invalid originDestination"),
            (("travelers",), [], "At least one traveler"),
            (("travelers", 0, "passengerType"), "SNR", "Invalid passengerType"),
            (("preference", "cabin"), "Z", "Invalid cabin code"),
            (("preference", "fareTypes"), ["XYZ"], "Invalid fare type"),
        ],
    )
    def test_invalid(self, air_shopping_params, path, value, message):
        with pytest.raises(ValidationError, match=message):
            AirShoppingRequest(with_change(air_shopping_params, path, value)).validate()

    def test_invalid_sort_order(self, air_shopping_params):
        params = {**air_shopping_params, "responseParameters": {"SortOrder": [{"Order": "UP", "Parameter": "PRICE"}]}}
        with pytest.raises(ValidationError, match="Invalid sort order"):
            AirShoppingRequest(params).validate()

    def test_wire_format(self, air_shopping_params):
        body = AirShoppingRequest(air_shopping_params).to_wire_format()

        od = body["CoreQuery"]["OriginDestinations"]["OriginDestination"][0]
        assert od["Departure"] == {"AirportCode": {"value": "SIN"}, "Date": "2026-12-01"}
        assert od["Arrival"] == {"AirportCode": {"value": "LHR"}}
        assert od["OriginDestinationKey"] == "OD1"
        assert body["Travelers"]["Traveler"][1] == {"AnonymousTraveler": [{"PTC": {"value": "CHD"}}]}
        assert body["Preference"]["CabinPreferences"] == {"CabinType": [{"Code": "Y"}]}
        assert body["Preference"]["FarePreferences"]["Types"]["Type"] == [{"Code": "PUBL"}]
        assert body["ResponseParameters"]["ShopResultPreference"] == "OPTIMIZED"
        assert "EnableGDS" not in body

    def test_recognized_traveler(self, air_shopping_params):
        params = {
            **air_shopping_params,
            "travelers": [
                {
                    "passengerType": "ADT",
                    "objectKey": "T1",
                    "frequentFlyer": {"airlineCode": "SQ", "accountNumber": "123456"},
                    "name": {"given": "Ann", "surname": "Lee"},
                }
            ],
        }

        traveler = AirShoppingRequest(params).to_wire_format()["Travelers"]["Traveler"][0]["RecognizedTraveler"]

        assert traveler["FQTVs"][0]["Account"] == {"Number": {"value": "123456"}}
        assert traveler["Name"] == {"Given": [{"value": "Ann"}], "Surname": {"value": "Lee"}}


@pytest.fixture
def flight_price_params():
    return {
        "DataLists": {
            **FARE_LIST,
            "AnonymousTravelerList": {"AnonymousTraveler": [{"ObjectKey": "T1", "PTC": {"value": "ADT"}}]},
        },
        "Query": {
            "OriginDestination": OFFER_QUERY["OriginDestination"],
            "Offers": {"Offer": [{"OfferID": {"Owner": "SQ", "value": "OFFER-1"}}]},
        },
        "Travelers": ANONYMOUS_TRAVELERS,
        "ShoppingResponseID": {"Owner": "SQ", "ResponseID": {"value": "RESP-1"}},
    }


class TestFlightPrice:
    def test_valid_and_passthrough(self, flight_price_params):
        request = FlightPriceRequest(flight_price_params)
        request.validate()

        body = request.to_wire_format()
        assert body["ShoppingResponseID"] == flight_price_params["ShoppingResponseID"]
        assert "Party" not in body

    @pytest.mark.parametrize(
        "path, value, message",
        [
            (("DataLists", "FareList"), ..., "FareList with FareGroup"),
            (("DataLists", "AnonymousTravelerList", "AnonymousTraveler", 0, "PTC", "value"), "X", "Invalid PTC"),
            (("Query", "Offers"), ..., "OriginDestination and Offers"),
            (("Query", "OriginDestination", 0, "Flight", 0, "SegmentKey"), ..., "Invalid Flight structure"),
            (("Travelers", "Traveler"), [], "At least one traveler"),
            (("ShoppingResponseID", "Owner"), ..., "Invalid ShoppingResponseID"),
        ],
    )
    def test_invalid(self, flight_price_params, path, value, message):
        with pytest.raises(ValidationError, match=message):
            FlightPriceRequest(with_change(flight_price_params, path, value)).validate()

    def test_card_qualifier_brand(self, flight_price_params):
        params = {
            **flight_price_params,
            "Qualifier": {"PaymentCardQualifier": {"cardBrandCode": "ZZ", "cardNumber": "411111"}},
        }
        with pytest.raises(ValidationError, match="card brand"):
            FlightPriceRequest(params).validate()


@pytest.fixture
def order_create_params():
    return {
        "query": {
            "orderItems": {
                "shoppingResponse": {
                    "owner": "SQ",
                    "responseId": "RESP-1",
                    "offers": {
                        "Offer": [
                            {"owner": "SQ", "offerId": "OFFER-1", "offerItems": [{"owner": "SQ", "offerId": "ITEM-1"}]}
                        ]
                    },
                },
                "offerItem": [
                    {
                        "offerId": "ITEM-1",
                        "owner": "SQ",
                        "type": "flight",
                        "price": {"baseAmount": 500, "taxAmount": 80, "currency": "SGD"},
                        "originDestination": [
                            {
                                "flights": [
                                    {
                                        "segmentKey": "SEG1",
                                        "departure": {"airport": "SIN", "date": "2026-12-01", "time": "23:35"},
                                        "arrival": {"airport": "LHR", "date": "2026-12-02"},
                                        "airline": "SQ",
                                        "flightNumber": 322,
                                    }
                                ]
                            }
                        ],
                    }
                ],
            },
            "dataLists": {"fares": [{"listKey": "FG1", "code": "YOW"}]},
            "passengers": [
                {
                    "objectKey": "T1",
                    "passengerType": "ADT",
                    "gender": "Female",
                    "name": {"given": ["Ann"], "surname": "Lee", "title": "Ms"},
                    "contacts": {
                        "phone": {"countryCode": "65", "number": "91234567"},
                        "email": "ann@example.com",
                        "address": {"street": "1 Main St", "postalCode": "018989", "city": "Singapore", "countryCode": "SG"},
                    },
                    "document": {"type": "PT", "number": "E1234567", "issuingCountry": "SG", "expiryDate": "2030-01-01"},
                }
            ],
        },
        "payments": [
            {"amount": 580, "currency": "SGD", "card": {"number": "4111111111111111", "expiryDate": "1229", "brand": "VI", "cvv": "123"}}
        ],
    }


class TestOrderCreate:
    def test_valid(self, order_create_params):
        OrderCreateRequest(order_create_params).validate()

    @pytest.mark.parametrize(
        "path, value, message",
        [
            (("query", "passengers"), ..., "Query must contain"),
            (("query", "orderItems", "offerItem", 0, "originDestination", 0, "flights", 0, "airline"), ..., "airline"),
            (("query", "dataLists", "fares", 0, "code"), ..., "listKey and code"),
            (("query", "passengers", 0, "passengerType"), "SNR", "Invalid passenger type"),
            (("query", "passengers", 0, "contacts", "email"), "not-an-email", "Invalid email"),
            (("query", "passengers", 0, "document", "type"), "XX", "Invalid document type"),
            (("payments", 0, "amount"), 0, "positive number"),
            (("payments", 0, "card", "expiryDate"), "13/29", "MMYY"),
            (("payments", 0, "card", "cvv"), "12", "CVV"),
        ],
    )
    def test_invalid(self, order_create_params, path, value, message):
        with pytest.raises(ValidationError, match=message):
            OrderCreateRequest(with_change(order_create_params, path, value)).validate()

    def test_payment_needs_method(self, order_create_params):
        params = with_change(order_create_params, ("payments", 0, "card"), ...)
        with pytest.raises(ValidationError, match="Invalid payment method"):
            OrderCreateRequest(params).validate()

    @pytest.mark.parametrize("code", ["SQ/DEAL1/CL1", "SQ/DEAL1", "SQ//CL1"])
    def test_corporate_code_formats(self, order_create_params, code):
        OrderCreateRequest({**order_create_params, "party": {"corporateCode": code}}).validate()

    def test_bad_corporate_code(self, order_create_params):
        with pytest.raises(ValidationError, match="corporate code"):
            OrderCreateRequest({**order_create_params, "party": {"corporateCode": "sq-deal"}}).validate()

    def test_third_party_falls_back_to_shopping_owner(self, order_create_params):
        assert OrderCreateRequest(order_create_params, third_party_id="XX").headers()["ThirdpartyId"] == "SQ"
        explicit = {**order_create_params, "thirdPartyId": "TR"}
        assert OrderCreateRequest(explicit).headers()["ThirdpartyId"] == "TR"

    def test_wire_format(self, order_create_params):
        body = OrderCreateRequest({**order_create_params, "party": {"corporateCode": "SQ/DEAL1"}}).to_wire_format()
        query = body["Query"]

        shopping = query["OrderItems"]["ShoppingResponse"]
        assert shopping["ResponseID"] == {"value": "RESP-1"}
        assert shopping["Offers"]["Offer"][0]["OfferID"] == {"Owner": "SQ", "Channel": "NDC", "value": "OFFER-1"}

        item = query["OrderItems"]["OfferItem"][0]
        flight = item["OfferItemType"]["DetailedFlightItem"][0]["OriginDestination"][0]["Flight"][0]
        assert flight["MarketingCarrier"]["FlightNumber"] == {"value": "322"}
        assert flight["Departure"]["Time"] == "23:35"
        assert "Time" not in flight["Arrival"]

        assert query["DataLists"]["FareList"]["FareGroup"] == [{"ListKey": "FG1", "FareBasisCode": {"Code": "YOW"}}]
        passenger = query["Passengers"]["Passenger"][0]
        assert passenger["Name"]["Given"] == [{"value": "Ann"}]
        assert passenger["PassengerIDInfo"]["PassengerDocument"][0]["CountryOfIssuance"] == "SG"
        payment = query["Payments"]["Payment"][0]
        assert payment["Amount"] == {"value": 580, "Code": "SGD"}
        assert payment["Method"]["PaymentCard"]["CardCode"] == "VI"
        assert body["Party"] == {"Sender": {"CorporateSender": {"CorporateCode": "SQ/DEAL1"}}}


class TestOrderRetrieve:
    def test_wire_format(self):
        request = OrderRetrieveRequest({"owner": "SQ", "value": "ABC123", "channel": "NDC"})
        request.validate()

        assert request.to_wire_format() == {
            "Query": {"Filters": {"OrderID": {"Owner": "SQ", "value": "ABC123", "Channel": "NDC"}}}
        }

    @pytest.mark.parametrize(
        "params, message",
        [
            ({"value": "ABC123"}, "Owner"),
            ({"owner": "SQA", "value": "ABC123"}, "airline code"),
            ({"owner": "SQ"}, "PNR/Booking reference is required"),
            ({"owner": "SQ", "value": "abc"}, "Invalid PNR"),
            ({"owner": "SQ", "value": "ABC123", "channel": "GDS"}, "Invalid channel"),
        ],
    )
    def test_invalid(self, params, message):
        with pytest.raises(ValidationError, match=message):
            OrderRetrieveRequest(params).validate()


class TestOrderCancel:
    def test_wire_format(self):
        params = {
            "orderId": [{"Owner": "SQ", "value": "ABC123", "Channel": "NDC"}],
            "expectedRefundAmount": {"Total": {"value": 250.0, "Code": "SGD"}},
            "correlationId": "CORR-1",
        }
        request = OrderCancelRequest(params)
        request.validate()

        assert request.to_wire_format() == {
            "Query": {"OrderID": params["orderId"]},
            "ExpectedRefundAmount": params["expectedRefundAmount"],
            "CorrelationID": "CORR-1",
        }

    @pytest.mark.parametrize(
        "params, message",
        [
            ({}, "OrderID is required"),
            ({"orderId": [{"Owner": "SQ"}]}, "Owner and value"),
            ({"orderId": [{"Owner": "SQ", "value": "AB"}]}, "Invalid PNR"),
            (
                {"orderId": [{"Owner": "SQ", "value": "ABC123"}], "expectedRefundAmount": {"Total": {"value": -1, "Code": "SGD"}}},
                "must be positive",
            ),
            (
                {
                    "orderId": [{"Owner": "SQ", "value": "ABC123"}],
                    "metadata": {
                        "Other": {
                            "OtherMetadata": [
                                {"CurrencyMetadatas": {"CurrencyMetadata": [{"MetadataKey": "C1", "Decimals": "2"}]}}
                            ]
                        }
                    },
                },
                "Decimals",
            ),
        ],
    )
    def test_invalid(self, params, message):
        with pytest.raises(ValidationError, match=message):
            OrderCancelRequest(params).validate()


class TestSeatAvailability:
    def test_pre(self):
        params = {"query": OFFER_QUERY, "dataLists": FARE_LIST, "travelers": ANONYMOUS_TRAVELERS}
        request = SeatAvailabilityRequest(params)
        request.validate()

        assert request.path().endswith("request:preSeatAvailability")
        assert request.to_wire_format() == {"Query": OFFER_QUERY, "DataLists": FARE_LIST, "Travelers": ANONYMOUS_TRAVELERS}

    def test_post(self):
        order_id = {"Owner": "SQ", "value": "ORD-1"}
        request = SeatAvailabilityRequest({"type": "POST", "query": {"OrderID": order_id, "Extra": 1}})
        request.validate()

        assert request.path().endswith("request:postSeatAvailability")
        assert request.to_wire_format() == {"Query": {"OrderID": order_id}}

    def test_post_requires_order_id(self):
        with pytest.raises(ValidationError, match="OrderID"):
            SeatAvailabilityRequest({"type": "post", "query": {}}).validate()

    def test_unknown_type(self):
        with pytest.raises(ValidationError, match="pre or post"):
            SeatAvailabilityRequest({"type": "during", "query": OFFER_QUERY}).validate()

    def test_bad_offer_channel(self):
        query = with_change(OFFER_QUERY, ("Offers", "Offer", 0, "OfferID", "Channel"), "GDS")
        with pytest.raises(ValidationError, match="Invalid channel"):
            SeatAvailabilityRequest({"query": query}).validate()


class TestServiceList:
    def test_pre_with_party_and_qualifier(self):
        params = {
            "query": OFFER_QUERY,
            "party": {"Sender": {"CorporateSender": {"CorporateCode": "SQ/DEAL1"}}},
            "qualifier": {
                "ProgramQualifiers": {
                    "ProgramQualifier": [
                        {
                            "DiscountProgramQualifier": {
                                "Account": {"value": "ACC"},
                                "AssocCode": {"value": "SQ"},
                                "Name": {"value": "Promo"},
                            }
                        }
                    ]
                }
            },
        }
        request = ServiceListRequest(params)
        request.validate()

        assert request.path().endswith("request:preServiceList")
        assert set(request.to_wire_format()) == {"Query", "Party", "Qualifier"}

    def test_post_checks_owner(self):
        with pytest.raises(ValidationError, match="airline code"):
            ServiceListRequest({"type": "post", "query": {"OrderID": {"Owner": "S1", "value": "ORD-1"}}}).validate()

    def test_traveler_birth_date(self):
        travelers = {
            "Traveler": [{"AnonymousTraveler": [{"PTC": {"value": "CHD"}, "Age": {"BirthDate": {"value": "01/02/2019"}}}]}]
        }
        with pytest.raises(ValidationError, match="birth date"):
            ServiceListRequest({"query": OFFER_QUERY, "travelers": travelers}).validate()

    def test_missing_departure_date(self):
        query = with_change(OFFER_QUERY, ("OriginDestination", 0, "Flight", 0, "Departure", "Date"), ...)
        with pytest.raises(ValidationError, match="Departure date"):
            ServiceListRequest({"query": query}).validate()


class TestRegistry:
    def test_endpoints(self):
        assert RequestRegistry().endpoints == [
            "airShopping",
            "flightPrice",
            "orderCreate",
            "orderRetrieve",
            "orderCancel",
            "seatAvailability",
            "serviceList",
        ]

    def test_build(self):
        request = RequestRegistry().build("orderRetrieve", {"owner": "SQ", "value": "ABC123"}, office_id="OFF1")
        assert isinstance(request, OrderRetrieveRequest)
        assert request.office_id == "OFF1"

    def test_unknown_endpoint(self):
        with pytest.raises(ValidationError, match="Unknown endpoint"):
            RequestRegistry().get("orderReshop")

    def test_ensure_known(self):
        registry = RequestRegistry()
        registry.ensure_known(["default", "airShopping"], "rate limit")
        with pytest.raises(ConfigurationError, match="orderReshop"):
            registry.ensure_known(["orderReshop"], "cache TTL")
