"""Delivery DTOs for the Service Layer."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery


class DeliveryOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    order_id: str
    agent_id: str
    status: str
    assigned_at: datetime
    delivered_at: Optional[datetime]
    notes: str
    version: int
    delivery_address: str = ""
    total_amount: Optional[Decimal] = None

    @classmethod
    def from_entity(cls, delivery: Delivery) -> DeliveryOutputDTO:
        order = delivery.order
        return cls(
            id=delivery.id,
            order_id=delivery.order_id,
            agent_id=delivery.agent_id,
            status=delivery.status,
            assigned_at=delivery.assigned_at,
            delivered_at=delivery.delivered_at,
            notes=delivery.notes,
            version=delivery.version,
            delivery_address=order.delivery_address,
            total_amount=order.total_amount,
        )


class BulkAssignmentFailureDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    error: str
    detail: str


class BulkAssignmentResultDTO(BaseModel):
    """Per-order outcome of a bulk assignment.

    Successful assignments stay committed regardless of failures.
    """

    model_config = ConfigDict(frozen=True)

    agent_id: str
    succeeded: List[str] = Field(default_factory=list)
    failed: List[BulkAssignmentFailureDTO] = Field(default_factory=list)


class EarningsSummaryDTO(BaseModel):
    """Cash/UPI collected vs. outstanding for one agent and window.

    ``total == cash + upi + other + unpaid``.  ``collected`` is what the
    agent handed in, ``cash + upi``; card payments settle elsewhere.
    """

    model_config = ConfigDict(frozen=True)

    agent_id: str
    window_start: datetime
    window_end: datetime
    cash: Decimal
    upi: Decimal
    other: Decimal
    unpaid: Decimal
    collected: Decimal
    total: Decimal
    order_count: int
