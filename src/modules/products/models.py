"""Catalog product as seen by the order lifecycle.

The catalog itself (CRUD, images, tags) is owned by another service; the
lifecycle only reads ``price`` and ``is_available`` when an order is placed
and the stock figures for dashboard summaries.

- Price must be greater than zero.
- Stock quantity is nullable: ``None`` means "not tracked".
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel


class Product(SoftDeleteModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    category = models.CharField(max_length=100, blank=True, default="")
    is_available = models.BooleanField(default=True)
    stock_quantity = models.PositiveIntegerField(null=True, blank=True, default=None)
    track_inventory = models.BooleanField(default=False)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_available"], name="products_available_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    @property
    def is_out_of_stock(self) -> bool:
        return self.track_inventory and not self.stock_quantity

    def __str__(self) -> str:
        return f"{self.name} (${self.price})"
