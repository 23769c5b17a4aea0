"""
OrderCancel request - cancel one or more orders.

Params:
    orderId: [{Owner, value, Channel?, refs?}]
    expectedRefundAmount: {Total: {value, Code}} for ticketed bookings
    metadata: {Other: {OtherMetadata: [...]}}
    correlationId: from a previous reshop response
"""

from typing import Any

from verteil.requests.base import (
    AIRLINE_CODE,
    CHANNELS,
    CURRENCY_CODE,
    PNR,
    BaseRequest,
    as_list,
    dig,
    has,
    require,
    require_choice,
    require_fields,
    require_pattern,
)


class OrderCancelRequest(BaseRequest):
    endpoint = "orderCancel"
    service = "OrderCancel"

    def validate(self) -> None:
        self._validate_order_ids()
        if self.params.get("expectedRefundAmount") is not None:
            self._validate_expected_refund_amount()
        if self.params.get("metadata") is not None:
            self._validate_metadata()

    def _validate_order_ids(self) -> None:
        orders = as_list(self.params.get("orderId"))
        require(bool(orders), "OrderID is required")

        for order in orders:
            require_fields(order, ("Owner", "value"), "OrderID must contain Owner and value")
            require_pattern(
                order["Owner"],
                AIRLINE_CODE,
                "Invalid airline code format in OrderID Owner. Must be a 2-letter IATA code",
            )
            require_pattern(
                order["value"],
                PNR,
                "Invalid PNR format in OrderID value. Must be 4-8 alphanumeric characters",
            )
            for ref in as_list(order.get("refs")):
                require(has(ref, "Ref"), "Invalid refs structure in OrderID")
            if "Channel" in order:
                require_choice(
                    order["Channel"], CHANNELS, "Invalid channel in OrderID. Must be NDC or Direct_Connect"
                )

    def _validate_expected_refund_amount(self) -> None:
        total = dig(self.params["expectedRefundAmount"], "Total")
        require(total is not None, "Total is required in ExpectedRefundAmount")
        require_fields(total, ("value", "Code"), "ExpectedRefundAmount Total must contain value and Code")
        require(
            isinstance(total["value"], (int, float)) and total["value"] > 0,
            "ExpectedRefundAmount Total value must be positive",
        )
        require_pattern(
            total["Code"],
            CURRENCY_CODE,
            "Invalid currency code format in ExpectedRefundAmount. Must be a 3-letter code",
        )

    def _validate_metadata(self) -> None:
        entries = dig(self.params["metadata"], "Other", "OtherMetadata")
        require(entries is not None, "Invalid Metadata structure")

        for entry in as_list(entries):
            if has(entry, "PriceMetadatas"):
                prices = dig(entry, "PriceMetadatas", "PriceMetadata")
                require(prices is not None, "PriceMetadata is required in PriceMetadatas")
                for price in as_list(prices):
                    require_fields(
                        price, ("AugmentationPoint", "MetadataKey"), "Invalid PriceMetadata structure"
                    )

            if has(entry, "CurrencyMetadatas"):
                currencies = dig(entry, "CurrencyMetadatas", "CurrencyMetadata")
                require(currencies is not None, "CurrencyMetadata is required in CurrencyMetadatas")
                for currency in as_list(currencies):
                    require_fields(
                        currency, ("MetadataKey", "Decimals"), "Invalid CurrencyMetadata structure"
                    )
                    require(
                        isinstance(currency["Decimals"], int) and currency["Decimals"] >= 0,
                        "Decimals must be non-negative in CurrencyMetadata",
                    )

    def to_wire_format(self) -> dict[str, Any]:
        body: dict[str, Any] = {"Query": {"OrderID": as_list(self.params["orderId"])}}
        if self.params.get("expectedRefundAmount") is not None:
            body["ExpectedRefundAmount"] = self.params["expectedRefundAmount"]
        if self.params.get("metadata") is not None:
            body["Metadata"] = self.params["metadata"]
        if self.params.get("correlationId") is not None:
            body["CorrelationID"] = self.params["correlationId"]
        return body
