"""
Order lifecycle operations after checkout.
"""
from __future__ import annotations

import logging
from uuid import UUID, uuid4

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ledger.domain.caller import Caller, require_admin, require_caller
from ledger.domain.errors import InvalidState, NotFound, Unauthorized, ValidationError
from ledger.domain.events import (
    BalancePaymentOpened,
    BalanceSettled,
    CancelledOrderPaid,
    DeliveryProofSubmitted,
    OrderCancelled,
    OrderPaymentConfirmed,
    OrderStatusForced,
    RefundCompleted,
    RefundRequested,
)
from ledger.domain.order import Order, OrderStatus, PaymentStatus
from ledger.infra.event_store import EventStoreRepository
from ledger.infra.gateway import GatewayLineItem, SessionState, get_payment_gateway
from ledger.infra.repositories import OrderRepository
from ledger.infra.retry import retry_with_backoff
from ledger.services.base import AGGREGATE_TYPE, EventRecordingService

logger = logging.getLogger(__name__)


class OrderService(EventRecordingService):
    """Service for order operations."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        gateway=None,
        outbox_repo=None,
        event_store_repo: EventStoreRepository | None = None,
    ):
        super().__init__(outbox_repo=outbox_repo, event_store_repo=event_store_repo)
        self.order_repo = order_repo or OrderRepository()
        self._gateway = gateway

    @property
    def gateway(self):
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    def _load(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    def _load_owned(self, caller: Caller | None, order_id: UUID) -> Order:
        caller = require_caller(caller)
        order = self._load(order_id)
        if order.user_id != caller.user_id:
            raise Unauthorized("You do not have permission to access this order")
        return order

    # Queries

    def get_order(self, caller: Caller | None, order_id: UUID) -> Order:
        """Get order visible to caller (owner or admin)."""
        caller = require_caller(caller)
        order = self._load(order_id)
        if order.user_id != caller.user_id and not caller.is_admin:
            raise Unauthorized("You do not have permission to access this order")
        return order

    def get_orders_for_user(self, caller: Caller | None, limit: int = 50, offset: int = 0) -> list[Order]:
        caller = require_caller(caller)
        return self.order_repo.get_by_user(caller.user_id, limit=limit, offset=offset)

    def get_order_events(self, caller: Caller | None, order_id: UUID, event_types=None) -> list[dict]:
        """Audit trail of an order."""
        require_admin(caller)
        self._load(order_id)
        return self.event_store_repo.get_events(order_id, AGGREGATE_TYPE, event_types=event_types)

    # Gateway confirmations

    @retry_with_backoff()
    @transaction.atomic
    def confirm_checkout_session(self, session_id: str) -> Order | None:
        """Apply a paid checkout session to its order.

        Returns None when no order references the session. Replays of an
        already applied session leave the order unchanged.
        """
        order = self.order_repo.find_by_session_id(session_id)
        if order is None:
            logger.warning("webhook_order_not_found", extra={"session_id": session_id})
            return None

        if session_id == order.balance_session_id:
            return self._settle_balance(order, session_id)

        if order.payment_status != PaymentStatus.PENDING:
            logger.info(
                "webhook_ignored",
                extra={
                    "order_id": str(order.id),
                    "session_id": session_id,
                    "status": order.payment_status.value,
                },
            )
            return order

        previous_status = order.status
        closed = order.is_closed
        order.confirm_payment()
        self.order_repo.save(order)

        if closed:
            self._record(CancelledOrderPaid(
                event_id=uuid4(),
                aggregate_id=order.id,
                event_type="CancelledOrderPaid",
                user_id=order.user_id,
                session_id=session_id,
                amount=order.down_payment,
                previous_status=previous_status.value,
            ))
            logger.warning(
                "payment_on_closed_order",
                extra={
                    "order_id": str(order.id),
                    "session_id": session_id,
                    "status": f"{previous_status.value} -> {order.status.value}",
                },
            )
            return order

        self._record(OrderPaymentConfirmed(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="OrderPaymentConfirmed",
            user_id=order.user_id,
            session_id=session_id,
            down_payment=order.down_payment,
            balance=order.balance,
            payment_status=order.payment_status.value,
            status=order.status.value,
            lines=[
                {
                    "item_id": line.item_id,
                    "quantity": line.quantity,
                    "cart_line_id": line.cart_line_id,
                }
                for line in order.lines
            ],
        ))
        logger.info(
            "order_payment_confirmed",
            extra={
                "order_id": str(order.id),
                "session_id": session_id,
                "status": order.payment_status.value,
            },
        )
        return order

    def _settle_balance(self, order: Order, session_id: str) -> Order:
        if order.payment_status != PaymentStatus.PENDING_FULL_PAYMENT:
            logger.info(
                "webhook_ignored",
                extra={
                    "order_id": str(order.id),
                    "session_id": session_id,
                    "status": order.payment_status.value,
                },
            )
            return order

        amount = order.balance
        order.settle_balance()
        self.order_repo.save(order)
        self._record(BalanceSettled(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="BalanceSettled",
            session_id=session_id,
            amount=amount,
        ))
        logger.info(
            "order_balance_settled",
            extra={"order_id": str(order.id), "session_id": session_id},
        )
        return order

    # Customer operations

    def complete_remaining_payment(self, caller: Caller | None, order_id: UUID) -> Order:
        """Open a checkout session for the order's remaining balance.

        The balance is settled when the gateway confirms that session. An open
        session is handed back again until the gateway reports it expired,
        after which a replacement is opened.
        """
        order = self._load_owned(caller, order_id)
        if order.payment_status == PaymentStatus.PENDING_FULL_PAYMENT and order.balance_session_id:
            state = self.gateway.get_checkout_session_state(order.balance_session_id)
            if state != SessionState.EXPIRED:
                # paid sessions are settled by the webhook
                return order
            logger.info(
                "balance_session_expired",
                extra={"order_id": str(order.id), "session_id": order.balance_session_id},
            )
        order.ensure_balance_payable()

        frontend_url = settings.FRONTEND_URL.rstrip("/")
        session = self.gateway.create_checkout_session(
            line_items=[GatewayLineItem(
                name=f"Remaining balance for Order #{str(order.id)[-8:]}",
                amount=order.balance,
            )],
            total_amount=order.balance,
            success_url=f"{frontend_url}/orders/{order.id}?payment=success",
            cancel_url=f"{frontend_url}/orders/{order.id}?payment=cancelled",
            description=f"Remaining balance for Order #{str(order.id)[-8:]}",
        )
        return self._attach_balance_session(order.id, session.session_id, session.checkout_url, order.balance_session_id)

    @retry_with_backoff()
    @transaction.atomic
    def _attach_balance_session(
        self,
        order_id: UUID,
        session_id: str,
        checkout_url: str,
        expected_session_id: str | None,
    ) -> Order:
        order = self._load(order_id)
        if order.balance_session_id != expected_session_id:
            # a concurrent request already attached its session
            logger.warning(
                "balance_session_discarded",
                extra={"order_id": str(order.id), "session_id": session_id},
            )
            return order
        replaced = order.open_balance_payment(session_id, checkout_url)
        self.order_repo.save(order)
        self._record(BalancePaymentOpened(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="BalancePaymentOpened",
            session_id=session_id,
            amount=order.balance,
            replaced_session_id=replaced,
        ))
        logger.info(
            "balance_payment_opened",
            extra={"order_id": str(order.id), "session_id": session_id},
        )
        return order

    @retry_with_backoff()
    @transaction.atomic
    def request_refund(self, caller: Caller | None, order_id: UUID) -> Order:
        order = self._load_owned(caller, order_id)
        order.request_refund()
        self.order_repo.save(order)
        self._record(RefundRequested(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="RefundRequested",
            user_id=order.user_id,
        ))
        logger.info("refund_requested", extra={"order_id": str(order.id)})
        return order

    @retry_with_backoff()
    @transaction.atomic
    def cancel_order(self, caller: Caller | None, order_id: UUID) -> Order:
        order = self._load_owned(caller, order_id)
        order.cancel()
        self.order_repo.save(order)
        self._record(OrderCancelled(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="OrderCancelled",
        ))
        logger.info("order_cancelled", extra={"order_id": str(order.id)})
        return order

    # Admin operations

    @retry_with_backoff()
    @transaction.atomic
    def complete_refund(self, caller: Caller | None, order_id: UUID) -> Order:
        require_admin(caller)
        order = self._load(order_id)
        order.complete_refund()
        self.order_repo.save(order)
        self._record(RefundCompleted(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="RefundCompleted",
            amount=order.down_payment,
        ))
        logger.info("refund_completed", extra={"order_id": str(order.id)})
        return order

    @retry_with_backoff()
    @transaction.atomic
    def force_status(self, caller: Caller | None, order_id: UUID, status: str) -> Order:
        """Set order status without transition checks."""
        admin = require_admin(caller)
        try:
            new_status = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown order status '{status}'")

        order = self._load(order_id)
        previous = order.force_status(new_status)
        self.order_repo.save(order)
        self._record(OrderStatusForced(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="OrderStatusForced",
            admin_id=admin.user_id,
            previous_status=previous.value,
            new_status=new_status.value,
        ))
        logger.warning(
            "order_status_forced",
            extra={
                "order_id": str(order.id),
                "user_id": str(admin.user_id),
                "status": f"{previous.value} -> {new_status.value}",
            },
        )
        return order

    @retry_with_backoff()
    @transaction.atomic
    def submit_delivery_proof(self, caller: Caller | None, order_id: UUID, proof_url: str) -> Order:
        require_admin(caller)
        order = self._load(order_id)
        if order.status in (OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise InvalidState(f"Order {order.id} is {order.status.value}")
        order.submit_delivery_proof(proof_url, timezone.now())
        self.order_repo.save(order)
        self._record(DeliveryProofSubmitted(
            event_id=uuid4(),
            aggregate_id=order.id,
            event_type="DeliveryProofSubmitted",
            proof_url=proof_url,
            status=order.status.value,
        ))
        logger.info(
            "delivery_proof_submitted",
            extra={"order_id": str(order.id), "status": order.status.value},
        )
        return order
