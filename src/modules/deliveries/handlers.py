"""Event handlers for Deliveries domain events."""

from __future__ import annotations

import structlog

from modules.deliveries.events import DeliveryAssigned, DeliveryStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class DeliveryAssignedHandler(IEventHandler[DeliveryAssigned]):
    def handle(self, event: DeliveryAssigned) -> None:
        logger.info(
            "delivery.event.assigned",
            delivery_id=event.aggregate_id,
            order_id=event.order_id,
            agent_id=event.agent_id,
        )


class DeliveryStatusChangedHandler(IEventHandler[DeliveryStatusChanged]):
    def handle(self, event: DeliveryStatusChanged) -> None:
        logger.info(
            "delivery.event.status_changed",
            delivery_id=event.aggregate_id,
            order_id=event.order_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


delivery_assigned_handler = DeliveryAssignedHandler()
delivery_status_changed_handler = DeliveryStatusChangedHandler()

SUBSCRIPTIONS = (
    (DeliveryAssigned, delivery_assigned_handler),
    (DeliveryStatusChanged, delivery_status_changed_handler),
)
