"""Persist domain events into the transactional outbox."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable
from uuid import UUID

import structlog

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


def write_events(events: Iterable[DomainEvent], topic: str) -> int:
    """Insert one ``OutboxEvent`` row per event; caller owns the transaction."""
    count = 0
    for event in events:
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event_payload(event),
            topic=topic,
        )
        count += 1
    return count


def flush_domain_events(aggregate: DomainEventMixin, topic: str) -> int:
    """Move the events collected on *aggregate* into the outbox."""
    count = write_events(aggregate.domain_events, topic)
    aggregate.clear_domain_events()
    if count:
        logger.info("outbox.events_written", topic=topic, event_count=count)
    return count


def serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    return json.loads(json.dumps(_normalize_for_json(data)))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
