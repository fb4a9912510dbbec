"""Read-only projections served to dashboards."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from modules.orders.dtos import OrderOutputDTO

if TYPE_CHECKING:
    from modules.products.models import Product


class StockSummaryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_products: int
    available_products: int
    tracked_products: int
    out_of_stock_products: int


class DashboardSummaryDTO(BaseModel):
    """Admin dashboard figures.  "Today" starts at local midnight."""

    model_config = ConfigDict(frozen=True)

    total_orders: int
    total_revenue: Decimal
    today_orders: int
    today_revenue: Decimal
    pending_deliveries: int
    assigned_deliveries: int


class ProductSnapshotDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    price: Decimal
    category: str
    is_available: bool
    stock_quantity: Optional[int]

    @classmethod
    def from_entity(cls, product: Product) -> ProductSnapshotDTO:
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            category=product.category,
            is_available=product.is_available,
            stock_quantity=product.stock_quantity,
        )


class DataSnapshotDTO(BaseModel):
    """Everything a dashboard reloads at once."""

    model_config = ConfigDict(frozen=True)

    orders: List[OrderOutputDTO]
    products: List[ProductSnapshotDTO]
