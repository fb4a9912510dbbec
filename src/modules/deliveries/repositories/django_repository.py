"""Django ORM implementation of the Delivery repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from modules.deliveries.constants import ACTIVE_STATES
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.interfaces import IDeliveryRepository
from shared.domain.exceptions import ConflictError
from shared.infrastructure.outbox import flush_domain_events

logger = structlog.get_logger(__name__)

DELIVERIES_TOPIC = "deliveries"


class DeliveryDjangoRepository(IDeliveryRepository):
    """Concrete Delivery repository backed by Django ORM."""

    @transaction.atomic
    def create(self, order_id: str, agent_id: str, notes: str = "") -> Delivery:
        delivery = Delivery(order_id=order_id, agent_id=agent_id, notes=notes)
        delivery.save(force_insert=True)
        logger.info(
            "delivery.persisted",
            delivery_id=str(delivery.id),
            order_id=order_id,
            agent_id=agent_id,
        )
        return delivery

    @transaction.atomic
    def compare_and_swap(
        self, id: str, expected_version: int, changes: Dict[str, Any]
    ) -> Delivery:
        updated = Delivery.objects.filter(id=id, version=expected_version).update(
            **changes,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(
                "delivery.version_conflict",
                delivery_id=str(id),
                expected_version=expected_version,
            )
            raise ConflictError("Delivery", str(id), expected_version)
        return Delivery.objects.get(id=id)

    @transaction.atomic
    def save(self, entity: Delivery) -> Delivery:
        flush_domain_events(entity, DELIVERIES_TOPIC)
        return entity

    def get_by_id(self, id: str) -> Optional[Delivery]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return Delivery.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Delivery]:
        try:
            return Delivery.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active_for_order(
        self, order_id: str, for_update: bool = False
    ) -> Optional[Delivery]:
        queryset = Delivery.objects.filter(order_id=order_id, status__in=ACTIVE_STATES)
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.first()

    def get_latest_for_order(self, order_id: str) -> Optional[Delivery]:
        return (
            Delivery.objects.filter(order_id=order_id)
            .order_by("-assigned_at", "-created_at")
            .first()
        )

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Delivery]:
        queryset = Delivery.objects.select_related("order")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset.order_by("-assigned_at"))
