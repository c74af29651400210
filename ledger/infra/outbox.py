"""
Outbox of committed order events awaiting side effects.

Rows are written in the same transaction as the order change that produced
them and consumed later by the side-effect dispatcher.
"""
from __future__ import annotations

import logging
from uuid import UUID, uuid4

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from ledger.domain.events import DomainEvent
from ledger.infra.event_store import serialize_event
from ledger.infra.models import TimeStampedModel

logger = logging.getLogger(__name__)


class OutboxEvent(TimeStampedModel):
    """Order event queued for the side-effect dispatcher."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_data = models.JSONField()
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    retry_count = models.IntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    class Meta:
        indexes = [
            models.Index(fields=("processed", "created_at")),
            models.Index(fields=("aggregate_id", "aggregate_type")),
        ]

    @property
    def order_id(self) -> str:
        return str(self.aggregate_id)


class OutboxRepository:
    """Queue and drain outbox rows."""

    @transaction.atomic
    def add_event(self, event: DomainEvent, aggregate_type: str) -> UUID:
        """Queue event; joins the caller's transaction when there is one."""
        row = OutboxEvent.objects.create(
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_data=serialize_event(event),
        )
        logger.debug(
            "outbox_event_added",
            extra={"operation": event.event_type, "order_id": str(event.aggregate_id)},
        )
        return row.id

    def _pending(self, max_retries: int | None = None):
        qs = OutboxEvent.objects.filter(processed=False)
        if max_retries is not None:
            qs = qs.filter(retry_count__lt=max_retries)
        return qs

    def get_unprocessed_events(self, limit: int = 100, max_retries: int | None = None) -> list[OutboxEvent]:
        """Oldest pending rows that still have retries left."""
        return list(self._pending(max_retries).order_by("created_at")[:limit])

    def pending_count(self, max_retries: int | None = None) -> int:
        return self._pending(max_retries).count()

    def mark_processed(self, event_id: UUID) -> None:
        OutboxEvent.objects.filter(id=event_id).update(
            processed=True,
            processed_at=timezone.now(),
            last_error="",
        )

    def record_failure(self, event_id: UUID, error: str) -> None:
        """Count a failed attempt and keep its reason for the admin."""
        OutboxEvent.objects.filter(id=event_id).update(
            retry_count=F("retry_count") + 1,
            last_error=error[:2000],
        )
