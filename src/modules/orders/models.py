"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- Order ``id`` is the human-readable sequential identifier (``APR000042``)
  issued by ``OrderIdGenerator``; the PK uniqueness is what makes the
  optimistic issue loop safe.
- ``total_amount`` is computed once at creation from the item snapshots and
  never recomputed.
- Orders are never deleted, only terminalised (delivered / cancelled).
- ``version`` backs compare-and-swap writes; stale writers get ``ConflictError``.
- OrderItem snapshots the product price at creation time (``price_at_order``)
  and is never mutated afterwards.
- Every status change appends an OrderStatusHistory row.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, TimestampedModel
from modules.orders.constants import (
    ORDER_STATE_MACHINE,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, TimestampedModel):
    """Order aggregate root."""

    id = models.CharField(primary_key=True, max_length=20, editable=False)
    customer_id = models.CharField(max_length=255, db_index=True)
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.NONE,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    delivery_address = models.TextField()
    notes = models.TextField(blank=True, default="")
    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return ORDER_STATE_MACHINE.is_terminal(self.status)

    @property
    def items_total(self) -> Decimal:
        """Σ quantity × price_at_order over the stored items."""
        return sum(
            (item.line_total for item in self.items.all()), Decimal("0.00")
        )

    def __str__(self) -> str:
        return f"{self.id} ({self.status})"


class OrderItem(BaseModel):
    """Immutable line item with a frozen price snapshot."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_at_order = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.price_at_order

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} (${self.price_at_order})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    ``actor_id`` is the principal that made the change; empty means the
    system (e.g. a delivery completing the order).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    actor_id = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
