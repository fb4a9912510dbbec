"""Celery tasks owned by the core module."""

from __future__ import annotations

from typing import Optional

import structlog
from celery import shared_task
from decouple import config

from modules.core.models import OutboxEvent
from shared.domain.bus import IEventBus
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)

RELAY_BATCH_SIZE = 100
OUTBOX_MAX_ATTEMPTS: int = config("OUTBOX_MAX_ATTEMPTS", default=5, cast=int)


def relay_pending_events(
    bus: Optional[IEventBus] = None,
    batch_size: int = RELAY_BATCH_SIZE,
    max_attempts: int = OUTBOX_MAX_ATTEMPTS,
) -> dict[str, int]:
    """Publish due outbox rows to *bus* in creation order.

    Pending rows go first time round; a row whose handler raised stays
    ``FAILED`` and is retried on later runs until it has failed
    *max_attempts* times. One failing row never blocks the rest of the batch.
    """
    if bus is None:
        from shared.infrastructure.bus import event_bus

        bus = event_bus

    published = failed = 0
    for row in OutboxEvent.objects.due(max_attempts)[:batch_size]:
        log = logger.bind(
            outbox_id=str(row.id), event_type=row.event_type, attempt=row.retry_count + 1
        )
        try:
            bus.publish(DomainEvent.from_payload(row.event_type, row.payload))
        except Exception as exc:  # noqa: BLE001 - recorded on the row
            log.exception("outbox.relay_failed")
            row.mark_as_failed(str(exc))
            failed += 1
        else:
            row.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = RELAY_BATCH_SIZE) -> dict[str, int]:
    return relay_pending_events(batch_size=batch_size)
