"""Delivery model: the fulfilment record linking an Order to an Agent.

Business rules implemented:
- At most one active (pending / in_progress) delivery per order, enforced
  by a partial unique constraint.  A failed delivery frees the order for a
  new assignment.
- ``agent_id`` is a weak reference to the agent principal; the delivery
  does not own the agent.
- ``delivered_at`` is set exactly when the status becomes ``delivered``.
- Terminal deliveries only accept trailing notes.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.deliveries.constants import ACTIVE_STATES, DeliveryStatus
from shared.domain.events import DomainEventMixin


class Delivery(DomainEventMixin, BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="deliveries",
    )
    agent_id = models.CharField(max_length=255, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    assigned_at = models.DateTimeField(default=timezone.now)
    delivered_at = models.DateTimeField(null=True, blank=True, default=None)
    notes = models.TextField(blank=True, default="")
    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "deliveries"
        ordering = ["-assigned_at"]
        indexes = [
            models.Index(fields=["agent_id", "status"], name="deliveries_agent_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(status__in=sorted(ACTIVE_STATES)),
                name="deliveries_one_active_per_order",
            ),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATES

    @property
    def holds_collection(self) -> bool:
        """The agent may still record payment: active or delivered."""
        return self.is_active or self.status == DeliveryStatus.DELIVERED

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.agent_id} ({self.status})"
