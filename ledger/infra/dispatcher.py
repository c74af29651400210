"""
Dispatcher for best-effort side effects recorded in the outbox.

Runs after the ledger transaction has committed. Failures are logged and
retried on the next run; they never touch the order's financial state.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from ledger.infra.outbox import OutboxEvent, OutboxRepository
from ledger.infra.repositories import CartRepository, ItemRepository

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    """Apply outbox events to the catalog and carts."""

    def __init__(
        self,
        outbox_repo: OutboxRepository | None = None,
        item_repo: ItemRepository | None = None,
        cart_repo: CartRepository | None = None,
        max_retries: int = 5,
    ):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.item_repo = item_repo or ItemRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.max_retries = max_retries

    def process_outbox_events(self, limit: int = 100) -> int:
        """Process unprocessed outbox events."""
        events = self.outbox_repo.get_unprocessed_events(limit=limit, max_retries=self.max_retries)
        processed_count = 0

        for event_orm in events:
            try:
                with transaction.atomic():
                    self._process_event(event_orm)
                    self.outbox_repo.mark_processed(event_orm.id)
                processed_count += 1
            except Exception as e:
                self.outbox_repo.record_failure(event_orm.id, f"{type(e).__name__}: {e}")
                logger.error(
                    "side_effect_failed",
                    extra={
                        "operation": event_orm.event_type,
                        "order_id": event_orm.order_id,
                        "error": str(e),
                    },
                    exc_info=True,
                )

        return processed_count

    def _process_event(self, event_orm: OutboxEvent) -> None:
        """Process single event."""
        if event_orm.event_type == "OrderPaymentConfirmed":
            self._handle_payment_confirmed(event_orm.event_data)

    def _handle_payment_confirmed(self, event_data: dict) -> None:
        """Bump item sales and drop purchased lines from the cart."""
        lines = event_data.get("lines") or []
        for line in lines:
            self.item_repo.increment_sales(UUID(line["item_id"]), int(line["quantity"]))

        cart_line_ids = [UUID(line["cart_line_id"]) for line in lines if line.get("cart_line_id")]
        if cart_line_ids:
            removed = self.cart_repo.remove_lines(UUID(event_data["user_id"]), cart_line_ids)
            logger.info(
                "cart_lines_cleared",
                extra={"order_id": event_data.get("aggregate_id"), "status": f"{removed} removed"},
            )
