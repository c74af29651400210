"""
GraphQL schema definition using Ariadne.
"""
import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    ObjectType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)

from ledger.api.inputs import (
    parse_checkout_lines,
    parse_create_order_input,
    parse_customization,
)
from ledger.domain.errors import ValidationError
from ledger.services import (
    CartService,
    CheckoutService,
    IdempotencyGuard,
    OrderService,
    PricingService,
)

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = "\n".join([
    load_schema_from_path(SCHEMAS_DIR / "common.graphql"),
    load_schema_from_path(SCHEMAS_DIR / "query.graphql"),
    load_schema_from_path(SCHEMAS_DIR / "mutation.graphql"),
])

query = QueryType()
mutation = MutationType()
order_type = ObjectType("Order")


def _caller(info):
    return info.context.get("caller")


def serialize_order_line(line) -> dict:
    return {
        "itemId": line.item_id,
        "quantity": line.quantity,
        "unitPrice": line.unit_price,
        "subtotal": line.subtotal,
        "isCustomizable": line.is_customizable,
        "customHeight": line.custom_height,
        "customWidth": line.custom_width,
        "customLength": line.custom_length,
        "legsFrameMaterial": line.legs_frame_material,
        "tabletopMaterial": line.tabletop_material,
    }


def serialize_order(order) -> dict:
    """Convert Order aggregate to GraphQL dict."""
    return {
        "id": order.id,
        "userId": order.user_id,
        "status": order.status.value,
        "paymentStatus": order.payment_status.value,
        "paymentType": order.payment_type.value,
        "deliveryOption": order.delivery_option.value,
        "amount": order.amount,
        "shippingFee": order.shipping_fee,
        "totalWithShipping": order.total_with_shipping,
        "downPayment": order.down_payment,
        "balance": order.balance,
        "checkoutUrl": order.checkout_url or None,
        "balanceCheckoutUrl": order.balance_checkout_url or None,
        "deliveryProof": order.delivery_proof,
        "deliveryDate": order.delivery_date,
        "scheduledDate": order.scheduled_date.isoformat() if order.scheduled_date else None,
        "createdAt": order.created_at,
        "version": order.version,
        "_lines": order.lines,
    }


def serialize_cart_line(line) -> dict:
    return {
        "id": line.id,
        "itemId": line.item_id,
        "itemName": line.item.name,
        "quantity": line.quantity,
        "unitPrice": line.custom_price if line.is_custom else line.item.price,
        "isCustom": line.is_custom,
        "customHeight": line.custom_height,
        "customWidth": line.custom_width,
        "customLength": line.custom_length,
        "laborDays": line.labor_days,
        "legsFrameMaterial": line.legs_frame_material,
        "tabletopMaterial": line.tabletop_material,
    }


@order_type.field("lines")
def resolve_order_lines(order_dict, info):
    """Resolve order lines."""
    return [serialize_order_line(line) for line in order_dict["_lines"]]


# Queries

@query.field("order")
def resolve_order(_, info, id):
    return serialize_order(OrderService().get_order(_caller(info), id))


@query.field("myOrders")
def resolve_my_orders(_, info, limit=50, offset=0):
    """Resolve caller's orders with pagination."""
    orders = OrderService().get_orders_for_user(_caller(info), limit=limit, offset=offset)
    return [serialize_order(order) for order in orders]


@query.field("orderEvents")
def resolve_order_events(_, info, orderId, eventTypes=None):
    events = OrderService().get_order_events(_caller(info), orderId, event_types=eventTypes)
    return [
        {
            "id": event["id"],
            "eventType": event["event_type"],
            "sequenceNumber": event["sequence_number"],
            "occurredAt": event["occurred_at"],
            "data": json.dumps(event["data"], sort_keys=True),
        }
        for event in events
    ]


@query.field("calculatePrice")
def resolve_calculate_price(_, info, itemId, customization: dict):
    """Resolve a price preview for a custom configuration."""
    quote = PricingService().quote(itemId, parse_customization(customization))
    breakdown = quote.breakdown
    return {
        "cost": quote.cost,
        "price": quote.price,
        "breakdown": {
            "planks3x3": breakdown.get("planks_3x3"),
            "planks2x12": breakdown.get("planks_2x12"),
            "materialCost": breakdown.get("material_cost"),
            "laborCost": breakdown.get("labor_cost"),
            "overheadCost": breakdown.get("overhead_cost"),
        },
    }


@query.field("paymentPlan")
def resolve_payment_plan(_, info, items: list):
    plan = PricingService().preview_plan(parse_checkout_lines(items))
    return {
        "customizedTotal": plan.customized_total,
        "normalTotal": plan.normal_total,
        "fullAmount": plan.full_amount,
        "downPaymentAmount": plan.down_payment_amount,
        "remainingBalance": plan.remaining_balance,
    }


@query.field("cart")
def resolve_cart(_, info):
    return [serialize_cart_line(line) for line in CartService().get_cart(_caller(info))]


# Mutations

@mutation.field("issueCheckoutToken")
def resolve_issue_checkout_token(_, info):
    return IdempotencyGuard().issue_token(_caller(info))


@mutation.field("createOrder")
def resolve_create_order(_, info, input: dict):
    """Resolve create order mutation."""
    result = CheckoutService().create_order(_caller(info), parse_create_order_input(input))
    return {
        "orderId": result.order_id,
        "checkoutUrl": result.checkout_url or None,
        "isDuplicate": result.is_duplicate,
        "order": serialize_order(result.order),
    }


@mutation.field("completeRemainingPayment")
def resolve_complete_remaining_payment(_, info, orderId):
    return serialize_order(OrderService().complete_remaining_payment(_caller(info), orderId))


@mutation.field("requestRefund")
def resolve_request_refund(_, info, orderId):
    return serialize_order(OrderService().request_refund(_caller(info), orderId))


@mutation.field("completeRefund")
def resolve_complete_refund(_, info, orderId):
    return serialize_order(OrderService().complete_refund(_caller(info), orderId))


@mutation.field("cancelOrder")
def resolve_cancel_order(_, info, orderId):
    return serialize_order(OrderService().cancel_order(_caller(info), orderId))


@mutation.field("forceOrderStatus")
def resolve_force_order_status(_, info, orderId, status):
    """Resolve admin status override."""
    return serialize_order(OrderService().force_status(_caller(info), orderId, status))


@mutation.field("submitDeliveryProof")
def resolve_submit_delivery_proof(_, info, orderId, proofUrl):
    return serialize_order(OrderService().submit_delivery_proof(_caller(info), orderId, proofUrl))


@mutation.field("addToCart")
def resolve_add_to_cart(_, info, input: dict):
    line = CartService().add_line(
        _caller(info),
        input["itemId"],
        quantity=input.get("quantity") or 1,
        customization=parse_customization(input.get("customization")),
    )
    return serialize_cart_line(line)


@mutation.field("removeFromCart")
def resolve_remove_from_cart(_, info, lineId):
    CartService().remove_line(_caller(info), lineId)
    return True


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to string."""
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string or number."""
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid decimal value: {value!r}")


@uuid_scalar.serializer
def serialize_uuid(value):
    """Serialize UUID to string."""
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


@datetime_scalar.value_parser
def parse_datetime_value(value):
    """Parse DateTime from string."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    order_type,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
)
