"""
Event store: append-only audit trail of order events.

Each order gets a gapless sequence starting at 1; the payload is the event
dataclass flattened to JSON-safe values.
"""
from __future__ import annotations

from dataclasses import fields
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from django.db import models

from ledger.domain.events import DomainEvent, EventVersion
from ledger.infra.models import TimeStampedModel

ENVELOPE_FIELDS = ("event_id", "aggregate_id", "event_type", "version", "occurred_at")


class EventStore(TimeStampedModel):
    """Event store for domain events."""
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    aggregate_id = models.UUIDField()
    aggregate_type = models.CharField(max_length=50)
    event_type = models.CharField(max_length=100)
    event_version = models.CharField(max_length=10, default=EventVersion.V1.value)
    event_data = models.JSONField()
    sequence_number = models.BigIntegerField()

    class Meta:
        indexes = [
            models.Index(fields=("aggregate_id", "aggregate_type")),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=("aggregate_id", "aggregate_type", "sequence_number"),
                name="unique_event_sequence",
            ),
        ]
        ordering = ["sequence_number"]


def _serialize_value(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def serialize_event(event: DomainEvent) -> dict:
    """Serialize event to a JSON-safe dict."""
    data = {
        "event_id": str(event.event_id),
        "aggregate_id": str(event.aggregate_id),
        "event_type": event.event_type,
        "version": event.version.value,
        "occurred_at": event.occurred_at,
    }
    for f in fields(event):
        if f.name not in ENVELOPE_FIELDS:
            data[f.name] = _serialize_value(getattr(event, f.name))
    return data


class EventStoreRepository:
    """Repository for event store."""

    def save_event(self, event: DomainEvent, aggregate_type: str) -> int:
        """Append event and return its sequence number."""
        last_event = (
            EventStore.objects
            .filter(aggregate_id=event.aggregate_id, aggregate_type=aggregate_type)
            .order_by("-sequence_number")
            .first()
        )
        sequence_number = (last_event.sequence_number + 1) if last_event else 1

        EventStore.objects.create(
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_version=event.version.value,
            event_data=serialize_event(event),
            sequence_number=sequence_number,
        )
        return sequence_number

    def get_events(self, aggregate_id: UUID, aggregate_type: str, event_types=None) -> list[dict]:
        """Events of one aggregate in sequence order, optionally of some types only."""
        events = EventStore.objects.filter(aggregate_id=aggregate_id, aggregate_type=aggregate_type)
        if event_types:
            events = events.filter(event_type__in=list(event_types))
        events = events.order_by("sequence_number")
        return [self._deserialize_event(e) for e in events]

    def _deserialize_event(self, event_orm: EventStore) -> dict:
        """Deserialize event from store."""
        return {
            "id": str(event_orm.id),
            "aggregate_id": str(event_orm.aggregate_id),
            "event_type": event_orm.event_type,
            "version": event_orm.event_version,
            "data": event_orm.event_data,
            "sequence_number": event_orm.sequence_number,
            "occurred_at": event_orm.created_at.isoformat(),
        }
