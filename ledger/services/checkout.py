"""
Checkout: idempotency guard and order creation.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from django.conf import settings
from django.db import IntegrityError, transaction

from ledger.domain.caller import Caller, require_caller
from ledger.domain.catalog import CatalogItem
from ledger.domain.errors import DuplicateRequest, ValidationError
from ledger.domain.events import OrderPlaced
from ledger.domain.money import ZERO, to_money
from ledger.domain.order import DeliveryOption, Order, PaymentType
from ledger.infra.gateway import GatewayLineItem, get_payment_gateway
from ledger.infra.repositories import CheckoutCounterRepository, OrderRepository
from ledger.services.base import EventRecordingService
from ledger.services.pricing import CheckoutLine, PricingService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    """Validated checkout input."""
    lines: list[CheckoutLine]
    delivery_option: DeliveryOption
    shipping_fee: Decimal = ZERO
    payment_type: PaymentType = PaymentType.FULL_PAYMENT
    transaction_hash: str | None = None
    scheduled_date: date | None = None

    def __post_init__(self):
        if not self.lines:
            raise ValidationError("Items are required")


@dataclass(frozen=True)
class Admission:
    """Outcome of an idempotency check."""
    accepted: bool
    existing_order_id: UUID | None = None

    @property
    def is_duplicate(self) -> bool:
        return not self.accepted


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    is_duplicate: bool = False

    @property
    def order_id(self) -> UUID:
        return self.order.id

    @property
    def checkout_url(self) -> str:
        return self.order.checkout_url


def build_request_hash(user_id: UUID, request: CheckoutRequest) -> str:
    """Fingerprint of the cart snapshot a checkout was made for."""
    content = {
        "user_id": str(user_id),
        "delivery_option": request.delivery_option.value,
        "payment_type": request.payment_type.value,
        "shipping_fee": str(to_money(request.shipping_fee)),
        "lines": sorted(
            (
                {
                    "item_id": str(line.item_id),
                    "quantity": line.quantity,
                    "customization": (
                        {
                            "length": str(line.customization.length),
                            "width": str(line.customization.width),
                            "height": str(line.customization.height),
                            "labor_days": str(line.customization.labor_days),
                            "material_3x3": line.customization.material_name_3x3,
                            "material_2x12": line.customization.material_name_2x12,
                        }
                        if line.customization else None
                    ),
                }
                for line in request.lines
            ),
            key=lambda line: json.dumps(line, sort_keys=True),
        ),
    }
    return hashlib.sha256(json.dumps(content, sort_keys=True).encode()).hexdigest()


class IdempotencyGuard:
    """Collapse repeated checkout submissions onto one order."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        counter_repo: CheckoutCounterRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.counter_repo = counter_repo or CheckoutCounterRepository()

    def issue_token(self, caller: Caller | None) -> str:
        """Issue the next checkout token for caller."""
        caller = require_caller(caller)
        counter = self.counter_repo.next_value(caller.user_id)
        return f"{caller.user_id}-{counter}"

    def admit_order(
        self,
        transaction_hash: str | None,
        request_hash: str = "",
        user_id: UUID | None = None,
    ) -> Admission:
        """Accept a new checkout or point at the order it duplicates."""
        if not transaction_hash:
            return Admission(accepted=True)

        existing = self.order_repo.find_by_transaction_hash(transaction_hash)
        if existing is None:
            return Admission(accepted=True)

        if user_id is not None and existing.user_id != user_id:
            raise DuplicateRequest("Idempotency key already used")
        if request_hash and existing.request_hash and existing.request_hash != request_hash:
            raise DuplicateRequest(
                "Idempotency key already used with different request",
                existing_order_id=existing.id,
            )
        return Admission(accepted=False, existing_order_id=existing.id)


class CheckoutService(EventRecordingService):
    """Service for turning a cart into a pending order and a checkout session."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        pricing: PricingService | None = None,
        guard: IdempotencyGuard | None = None,
        gateway=None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.order_repo = order_repo or OrderRepository()
        self.pricing = pricing or PricingService()
        self.guard = guard or IdempotencyGuard(order_repo=self.order_repo)
        self._gateway = gateway

    @property
    def gateway(self):
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    def create_order(self, caller: Caller | None, request: CheckoutRequest) -> CheckoutResult:
        """Create a pending order and open its checkout session."""
        caller = require_caller(caller)
        request_hash = build_request_hash(caller.user_id, request)

        admission = self.guard.admit_order(request.transaction_hash, request_hash, caller.user_id)
        if admission.is_duplicate:
            logger.info(
                "duplicate_checkout",
                extra={
                    "order_id": str(admission.existing_order_id),
                    "idempotency_key": request.transaction_hash,
                },
            )
            return CheckoutResult(self.order_repo.get_by_id(admission.existing_order_id), is_duplicate=True)

        lines, items = self.pricing.price_lines(request.lines)
        order = Order.place(
            user_id=caller.user_id,
            lines=lines,
            delivery_option=request.delivery_option,
            shipping_fee=request.shipping_fee,
            payment_type=request.payment_type,
            transaction_hash=request.transaction_hash,
            request_hash=request_hash,
            scheduled_date=request.scheduled_date,
        )

        # Nothing is persisted unless the gateway accepts the session.
        frontend_url = settings.FRONTEND_URL.rstrip("/")
        session = self.gateway.create_checkout_session(
            line_items=self._gateway_line_items(order, items),
            total_amount=order.charge_amount,
            success_url=f"{frontend_url}/orders/{order.id}?payment=success",
            cancel_url=f"{frontend_url}/orders/{order.id}?payment=cancelled",
            description=f"Payment for Order #{str(order.id)[-8:]}",
        )
        order.transaction_id = session.session_id
        order.checkout_url = session.checkout_url

        try:
            with transaction.atomic():
                self.order_repo.save(order)
                self._record(OrderPlaced(
                    event_id=uuid4(),
                    aggregate_id=order.id,
                    event_type="OrderPlaced",
                    user_id=caller.user_id,
                    amount=order.amount,
                    total_with_shipping=order.total_with_shipping,
                    charge_amount=order.charge_amount,
                    payment_type=order.payment_type.value,
                    transaction_id=session.session_id,
                    lines_count=len(order.lines),
                ))
        except IntegrityError:
            # A concurrent submit with the same key won the insert.
            existing = self.order_repo.find_by_transaction_hash(request.transaction_hash) if request.transaction_hash else None
            if existing is None:
                raise
            logger.info(
                "duplicate_checkout_race",
                extra={"order_id": str(existing.id), "session_id": session.session_id},
            )
            return CheckoutResult(existing, is_duplicate=True)

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "user_id": str(caller.user_id),
                "session_id": session.session_id,
                "status": order.status.value,
                "operation": order.payment_type.value,
            },
        )
        return CheckoutResult(order)

    def _gateway_line_items(self, order: Order, items: dict[UUID, CatalogItem]) -> list[GatewayLineItem]:
        """Line items whose total equals the order's charge amount."""
        line_items = []
        if order.payment_type == PaymentType.DOWN_PAYMENT:
            for line in order.lines:
                if not line.is_customizable:
                    line_items.append(GatewayLineItem(
                        name=items[line.item_id].name,
                        amount=line.unit_price,
                        quantity=line.quantity,
                    ))
            plan = order.plan
            line_items.append(GatewayLineItem(
                name="Down payment (30%) for made-to-order items",
                amount=plan.down_payment_amount - plan.normal_total,
            ))
        else:
            for line in order.lines:
                line_items.append(GatewayLineItem(
                    name=items[line.item_id].name,
                    amount=line.unit_price,
                    quantity=line.quantity,
                ))

        if order.shipping_fee > 0:
            line_items.append(GatewayLineItem(name="Shipping Fee", amount=order.shipping_fee))
        return line_items
