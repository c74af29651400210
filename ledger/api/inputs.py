"""
Parse GraphQL input objects into service request types.
"""
from __future__ import annotations

from datetime import date
from uuid import UUID

from ledger.domain.errors import ValidationError
from ledger.domain.money import ZERO, to_money
from ledger.domain.order import DeliveryOption, PaymentType
from ledger.domain.pricing import CustomizationInput
from ledger.services.checkout import CheckoutRequest
from ledger.services.pricing import CheckoutLine


def _enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def parse_customization(data: dict | None) -> CustomizationInput | None:
    if not data:
        return None
    return CustomizationInput(
        length=data["length"],
        width=data["width"],
        height=data["height"],
        labor_days=data["laborDays"],
        material_name_3x3=data["materialName3x3"],
        material_name_2x12=data["materialName2x12"],
    )


def parse_checkout_lines(items: list[dict]) -> list[CheckoutLine]:
    return [
        CheckoutLine(
            item_id=UUID(str(item["itemId"])),
            quantity=item["quantity"],
            customization=parse_customization(item.get("customization")),
            cart_line_id=UUID(str(item["cartLineId"])) if item.get("cartLineId") else None,
        )
        for item in items
    ]


def parse_create_order_input(data: dict) -> CheckoutRequest:
    """Build a CheckoutRequest from a CreateOrderInput."""
    try:
        shipping_fee = to_money(data.get("shippingFee") or ZERO)
    except ValueError:
        raise ValidationError("shippingFee must be a number")

    scheduled_date = None
    if data.get("scheduledDate"):
        try:
            scheduled_date = date.fromisoformat(data["scheduledDate"])
        except ValueError:
            raise ValidationError("scheduledDate must be an ISO date (YYYY-MM-DD)")

    return CheckoutRequest(
        lines=parse_checkout_lines(data.get("items") or []),
        delivery_option=_enum(DeliveryOption, data.get("deliveryOption"), "deliveryOption"),
        shipping_fee=shipping_fee,
        payment_type=_enum(
            PaymentType,
            data.get("paymentType") or PaymentType.FULL_PAYMENT.value,
            "paymentType",
        ),
        transaction_hash=data.get("transactionHash") or None,
        scheduled_date=scheduled_date,
    )
