"""Django ORM implementation of the Product repository."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db.models import Count, Q, QuerySet

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository


class ProductDjangoRepository(IProductRepository):
    def queryset(self) -> QuerySet:
        return Product.objects.alive().order_by("name", "id")

    def get_by_id(self, id: str) -> Optional[Product]:
        """Returns ``None`` for unknown, deleted or malformed IDs."""
        try:
            return self.queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        products = self.queryset().filter(id__in=list(ids))
        return {product.id: product for product in products}

    def list(self) -> List[Product]:
        return list(self.queryset())

    def stock_counts(self) -> Dict[str, int]:
        return Product.objects.alive().aggregate(
            total=Count("id"),
            available=Count("id", filter=Q(is_available=True)),
            tracked=Count("id", filter=Q(track_inventory=True)),
            out_of_stock=Count(
                "id",
                filter=Q(track_inventory=True)
                & (Q(stock_quantity__isnull=True) | Q(stock_quantity=0)),
            ),
        )
