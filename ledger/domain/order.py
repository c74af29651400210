"""
Domain model for Order aggregate.
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from ledger.domain.errors import InvalidState, ValidationError
from ledger.domain.money import ZERO, to_money
from ledger.domain.payment_plan import PaymentPlan, compute_plan


class OrderStatus(str, Enum):
    """Order lifecycle status."""
    PENDING = "Pending"
    ON_PROCESS = "On Process"
    READY_FOR_PICKUP = "Ready for Pickup"
    DELIVERED = "Delivered"
    PICKED_UP = "Picked Up"
    CANCELLED = "Cancelled"
    REQUESTING_REFUND = "Requesting for Refund"
    REFUNDED = "Refunded"


class PaymentStatus(str, Enum):
    """Order payment status."""
    PENDING = "Pending"
    DOWNPAYMENT_RECEIVED = "Downpayment Received"
    PENDING_FULL_PAYMENT = "Pending Full Payment"
    FULLY_PAID = "Fully Paid"
    REFUND_REQUESTED = "Refund Requested"
    REFUNDED = "Refunded"


class DeliveryOption(str, Enum):
    SHIPPING = "shipping"
    PICKUP = "pickup"


class PaymentType(str, Enum):
    FULL_PAYMENT = "full_payment"
    DOWN_PAYMENT = "down_payment"


class OrderLine:
    """Order line value object."""

    def __init__(
        self,
        item_id: UUID,
        quantity: int,
        unit_price: Decimal,
        is_customizable: bool = False,
        custom_height: Decimal | None = None,
        custom_width: Decimal | None = None,
        custom_length: Decimal | None = None,
        legs_frame_material: str | None = None,
        tabletop_material: str | None = None,
        cart_line_id: UUID | None = None,
    ):
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")
        if unit_price < 0:
            raise ValidationError("Price must be non-negative")

        self.item_id = item_id
        self.quantity = quantity
        self.unit_price = to_money(unit_price)
        self.is_customizable = is_customizable
        self.custom_height = custom_height
        self.custom_width = custom_width
        self.custom_length = custom_length
        self.legs_frame_material = legs_frame_material
        self.tabletop_material = tabletop_material
        self.cart_line_id = cart_line_id

    @property
    def subtotal(self) -> Decimal:
        """Calculate line subtotal."""
        return self.unit_price * self.quantity


class Order:
    """Order aggregate root.

    ``down_payment`` is what has been collected so far and ``balance`` what is
    still owed; together they always equal ``total_with_shipping``.
    """

    def __init__(
        self,
        id: UUID | None = None,
        user_id: UUID | None = None,
        lines: list[OrderLine] | None = None,
        delivery_option: DeliveryOption = DeliveryOption.SHIPPING,
        shipping_fee: Decimal = ZERO,
        payment_type: PaymentType = PaymentType.FULL_PAYMENT,
        status: OrderStatus = OrderStatus.PENDING,
        payment_status: PaymentStatus = PaymentStatus.PENDING,
        down_payment: Decimal = ZERO,
        balance: Decimal | None = None,
        transaction_hash: str | None = None,
        request_hash: str = "",
        transaction_id: str | None = None,
        checkout_url: str = "",
        balance_session_id: str | None = None,
        balance_checkout_url: str = "",
        delivery_proof: str | None = None,
        delivery_date: datetime | None = None,
        scheduled_date: date | None = None,
        version: int = 0,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self._lines = lines or []
        self.delivery_option = delivery_option
        self._shipping_fee = to_money(shipping_fee)
        self.payment_type = payment_type
        self._status = status
        self._payment_status = payment_status
        self._down_payment = to_money(down_payment)
        self._balance = self.total_with_shipping if balance is None else to_money(balance)
        self.transaction_hash = transaction_hash
        self.request_hash = request_hash
        self.transaction_id = transaction_id
        self.checkout_url = checkout_url
        self.balance_session_id = balance_session_id
        self.balance_checkout_url = balance_checkout_url
        self.delivery_proof = delivery_proof
        self.delivery_date = delivery_date
        self.scheduled_date = scheduled_date
        self.version = version
        self.created_at = created_at

    @classmethod
    def place(
        cls,
        user_id: UUID,
        lines: list[OrderLine],
        delivery_option: DeliveryOption,
        shipping_fee: Decimal = ZERO,
        payment_type: PaymentType = PaymentType.FULL_PAYMENT,
        transaction_hash: str | None = None,
        request_hash: str = "",
        scheduled_date: date | None = None,
    ) -> "Order":
        """Create a new order awaiting payment."""
        if not lines:
            raise ValidationError("Order must contain at least one line")
        shipping_fee = to_money(shipping_fee)
        if shipping_fee < 0:
            raise ValidationError("Shipping fee must be non-negative")
        if delivery_option == DeliveryOption.PICKUP and shipping_fee > 0:
            raise ValidationError("Pickup orders cannot carry a shipping fee")

        # Stock-only carts are always paid in full.
        if not any(line.is_customizable for line in lines):
            payment_type = PaymentType.FULL_PAYMENT

        return cls(
            user_id=user_id,
            lines=list(lines),
            delivery_option=delivery_option,
            shipping_fee=shipping_fee,
            payment_type=payment_type,
            transaction_hash=transaction_hash,
            request_hash=request_hash,
            scheduled_date=scheduled_date,
        )

    @property
    def lines(self) -> list[OrderLine]:
        """Get order lines (immutable)."""
        return list(self._lines)

    @property
    def status(self) -> OrderStatus:
        return self._status

    @property
    def payment_status(self) -> PaymentStatus:
        return self._payment_status

    @property
    def amount(self) -> Decimal:
        """Sum of line subtotals, shipping excluded."""
        return to_money(sum((line.subtotal for line in self._lines), ZERO))

    @property
    def shipping_fee(self) -> Decimal:
        return self._shipping_fee

    @property
    def total_with_shipping(self) -> Decimal:
        return self.amount + self._shipping_fee

    @property
    def down_payment(self) -> Decimal:
        return self._down_payment

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def plan(self) -> PaymentPlan:
        return compute_plan(self._lines)

    @property
    def has_customized_lines(self) -> bool:
        return any(line.is_customizable for line in self._lines)

    @property
    def charge_amount(self) -> Decimal:
        """Amount the initial checkout session must collect."""
        if self.payment_type == PaymentType.DOWN_PAYMENT:
            return self.plan.down_payment_amount + self._shipping_fee
        return self.total_with_shipping

    def _fulfillment_status(self) -> OrderStatus:
        if self.delivery_option == DeliveryOption.PICKUP:
            return OrderStatus.READY_FOR_PICKUP
        return OrderStatus.ON_PROCESS

    @property
    def is_closed(self) -> bool:
        """Cancelled or refunded; no further fulfillment."""
        return self._status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

    def confirm_payment(self) -> None:
        """Apply the gateway's confirmation of the initial checkout.

        Guarded on the payment state so a replayed session never re-applies.
        Money that arrives for a closed order is booked and the order goes to
        refund review.
        """
        if self._payment_status != PaymentStatus.PENDING:
            raise InvalidState(f"Order {self.id} is not awaiting payment")

        closed = self.is_closed
        if self.payment_type == PaymentType.DOWN_PAYMENT:
            self._down_payment = self.charge_amount
            self._balance = self.total_with_shipping - self._down_payment
            self._payment_status = PaymentStatus.DOWNPAYMENT_RECEIVED
            fulfillment = OrderStatus.ON_PROCESS
        else:
            self._down_payment = self.total_with_shipping
            self._balance = ZERO
            self._payment_status = PaymentStatus.FULLY_PAID
            fulfillment = self._fulfillment_status()

        if closed:
            self._status = OrderStatus.REQUESTING_REFUND
            self._payment_status = PaymentStatus.REFUND_REQUESTED
        elif self._status == OrderStatus.PENDING:
            self._status = fulfillment

    def ensure_balance_payable(self) -> None:
        """Raise InvalidState unless a balance checkout may be opened now.

        An order already waiting on a balance session may open a replacement.
        """
        if self._balance <= 0:
            raise InvalidState("No remaining balance to be paid")
        if self._payment_status not in (PaymentStatus.DOWNPAYMENT_RECEIVED, PaymentStatus.PENDING_FULL_PAYMENT):
            raise InvalidState(
                f"Remaining balance cannot be paid while payment status is '{self._payment_status.value}'"
            )
        if self._status in (OrderStatus.CANCELLED, OrderStatus.REQUESTING_REFUND, OrderStatus.REFUNDED):
            raise InvalidState(f"Order {self.id} is {self._status.value}")

    def open_balance_payment(self, session_id: str, checkout_url: str = "") -> str | None:
        """Record the checkout session opened for the remaining balance.

        Returns the session it replaces, if any.
        """
        self.ensure_balance_payable()

        replaced = self.balance_session_id if self._payment_status == PaymentStatus.PENDING_FULL_PAYMENT else None
        self.balance_session_id = session_id
        self.balance_checkout_url = checkout_url
        self._payment_status = PaymentStatus.PENDING_FULL_PAYMENT
        return replaced

    def settle_balance(self) -> None:
        """Apply the gateway's confirmation of the balance payment."""
        if self._payment_status != PaymentStatus.PENDING_FULL_PAYMENT:
            raise InvalidState(f"Order {self.id} has no balance payment in progress")

        self._balance = ZERO
        self._down_payment = self.total_with_shipping
        self._payment_status = PaymentStatus.FULLY_PAID

    def request_refund(self) -> None:
        """Move order to refund review."""
        if self.has_customized_lines:
            raise InvalidState("Refund requests cannot be made for orders containing customized items")
        if self._status != OrderStatus.ON_PROCESS:
            raise InvalidState(
                "Refund requests can only be made for orders that are currently being processed"
            )

        self._status = OrderStatus.REQUESTING_REFUND
        self._payment_status = PaymentStatus.REFUND_REQUESTED

    def complete_refund(self) -> None:
        """Mark a requested refund as paid out."""
        if self._status != OrderStatus.REQUESTING_REFUND:
            raise InvalidState(f"Order {self.id} has no pending refund request")

        self._status = OrderStatus.REFUNDED
        self._payment_status = PaymentStatus.REFUNDED

    def cancel(self) -> None:
        """Cancel order."""
        if self._status != OrderStatus.PENDING:
            raise InvalidState("Only orders awaiting payment can be cancelled")

        self._status = OrderStatus.CANCELLED

    def force_status(self, status: OrderStatus) -> OrderStatus:
        """Set status without transition checks. Returns the previous status."""
        if status == OrderStatus.REQUESTING_REFUND and self.has_customized_lines:
            raise InvalidState("Orders containing customized items cannot be refunded")

        previous = self._status
        self._status = status
        return previous

    def submit_delivery_proof(self, proof_url: str, delivered_at: datetime) -> None:
        """Complete fulfillment with a proof of delivery."""
        if not proof_url:
            raise ValidationError("Delivery proof is required")
        if self.delivery_proof:
            raise InvalidState(f"Order {self.id} already has a delivery proof")

        if self.delivery_option == DeliveryOption.PICKUP:
            self._status = OrderStatus.PICKED_UP
        else:
            self._status = OrderStatus.DELIVERED
        self.delivery_proof = proof_url
        self.delivery_date = delivered_at
