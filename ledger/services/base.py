"""
Shared plumbing for application services.
"""
from __future__ import annotations

from django.utils import timezone

from ledger.domain.events import DomainEvent
from ledger.infra.event_store import EventStoreRepository
from ledger.infra.outbox import OutboxRepository

AGGREGATE_TYPE = "Order"


class EventRecordingService:
    """Base for services that append order events to the store and outbox."""

    def __init__(
        self,
        outbox_repo: OutboxRepository | None = None,
        event_store_repo: EventStoreRepository | None = None,
    ):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.event_store_repo = event_store_repo or EventStoreRepository()

    def _record(self, event: DomainEvent) -> None:
        """Stamp event and save it to the event store and outbox."""
        event.occurred_at = timezone.now().isoformat()
        self.event_store_repo.save_event(event, AGGREGATE_TYPE)
        self.outbox_repo.add_event(event, AGGREGATE_TYPE)
