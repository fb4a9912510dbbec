"""Domain events for the Deliveries bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class DeliveryAssigned(DomainEvent):
    order_id: str = ""
    agent_id: str = ""


@dataclass(frozen=True)
class DeliveryStatusChanged(DomainEvent):
    order_id: str = ""
    old_status: str = ""
    new_status: str = ""
