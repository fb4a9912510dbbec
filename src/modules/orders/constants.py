"""Order domain constants.

Status, payment choices and the order state machine table.
"""

from decouple import config
from django.db import models

from shared.domain.state_machine import StateMachine


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    ASSIGNED = "assigned", "Assigned"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    UPI = "upi", "UPI"
    CREDIT_CARD = "credit_card", "Credit card"
    NONE = "none", "None"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.ASSIGNED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.ASSIGNED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.ASSIGNED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

ORDER_STATE_MACHINE = StateMachine("Order", VALID_TRANSITIONS)

TERMINAL_STATES: frozenset[str] = ORDER_STATE_MACHINE.terminal_states

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {PaymentStatus.PAID},
    PaymentStatus.PAID: set(),
}

PAYMENT_STATE_MACHINE = StateMachine("Payment", PAYMENT_TRANSITIONS)

ORDER_ID_PREFIX: str = config("ORDER_ID_PREFIX", default="APR")
ORDER_ID_WIDTH: int = config("ORDER_ID_WIDTH", default=6, cast=int)
ORDER_ID_MAX_RETRIES: int = config("ORDER_ID_MAX_RETRIES", default=5, cast=int)
