"""
Expose ORM models for Django's auto-discovery while keeping real definitions
under the infrastructure module.
"""

from ledger.infra.models import *
from ledger.infra.event_store import EventStore
from ledger.infra.outbox import OutboxEvent
