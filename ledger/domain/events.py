"""
Domain events for the order ledger (audit trail and outbox).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    event_id: UUID
    aggregate_id: UUID
    event_type: str
    # version and occurred_at are set in subclasses to avoid dataclass field ordering issues


@dataclass
class OrderPlaced(DomainEvent):
    """Order created, awaiting gateway confirmation."""
    user_id: UUID
    amount: Decimal
    total_with_shipping: Decimal
    charge_amount: Decimal
    payment_type: str
    transaction_id: str
    lines_count: int
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderPaymentConfirmed(DomainEvent):
    """Initial checkout paid (webhook)."""
    user_id: UUID
    session_id: str
    down_payment: Decimal
    balance: Decimal
    payment_status: str
    status: str
    lines: list = field(default_factory=list)
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class CancelledOrderPaid(DomainEvent):
    """Initial checkout paid after the order was closed; awaiting refund."""
    user_id: UUID
    session_id: str
    amount: Decimal
    previous_status: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class BalancePaymentOpened(DomainEvent):
    """Checkout session created for the remaining balance."""
    session_id: str
    amount: Decimal
    replaced_session_id: str | None = None
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class BalanceSettled(DomainEvent):
    """Remaining balance paid (webhook)."""
    session_id: str
    amount: Decimal
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class RefundRequested(DomainEvent):
    """Owner asked for a refund."""
    user_id: UUID
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class RefundCompleted(DomainEvent):
    """Refund paid out by an admin."""
    amount: Decimal
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderCancelled(DomainEvent):
    """Order cancelled by its owner."""
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class OrderStatusForced(DomainEvent):
    """Admin override of the order status."""
    admin_id: UUID
    previous_status: str
    new_status: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class DeliveryProofSubmitted(DomainEvent):
    """Fulfillment completed with a proof of delivery."""
    proof_url: str
    status: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
