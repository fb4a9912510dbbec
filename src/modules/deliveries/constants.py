"""Delivery domain constants and the delivery state machine table."""

from django.db import models

from shared.domain.state_machine import StateMachine


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In progress"
    DELIVERED = "delivered", "Delivered"
    FAILED = "failed", "Failed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.PENDING: {DeliveryStatus.IN_PROGRESS, DeliveryStatus.FAILED},
    DeliveryStatus.IN_PROGRESS: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.FAILED: set(),
}

DELIVERY_STATE_MACHINE = StateMachine("Delivery", VALID_TRANSITIONS)

ACTIVE_STATES: frozenset[str] = frozenset(
    {DeliveryStatus.PENDING, DeliveryStatus.IN_PROGRESS}
)
