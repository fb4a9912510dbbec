"""Pydantic DTOs exchanged between the order views and ``OrderService``.

``OrderDraft`` is the customer's cart before submission and is never
stored; ``to_create_dto`` turns it into the creation request.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, List, Optional
from uuid import UUID

from pydantic import Field, PositiveInt, field_validator, model_validator

from modules.orders.constants import PaymentMethod
from shared.domain.dto import FrozenDTO

if TYPE_CHECKING:
    from modules.orders.models import Order


class OrderDraft(FrozenDTO):
    """Cart as a value object: every mutator returns a new draft and a
    quantity of zero drops the line."""

    lines: Dict[UUID, PositiveInt] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def set_quantity(self, product_id: UUID, quantity: int) -> OrderDraft:
        lines = {pid: qty for pid, qty in self.lines.items() if pid != product_id}
        if quantity > 0:
            lines[product_id] = quantity
        return OrderDraft(lines=lines)

    def add(self, product_id: UUID, quantity: int = 1) -> OrderDraft:
        return self.set_quantity(product_id, self.lines.get(product_id, 0) + quantity)

    def remove(self, product_id: UUID) -> OrderDraft:
        return self.set_quantity(product_id, 0)

    def to_create_dto(
        self,
        customer_id: str,
        payment_method: PaymentMethod,
        delivery_address: str,
        notes: str = "",
    ) -> CreateOrderDTO:
        return CreateOrderDTO(
            customer_id=customer_id,
            items=[
                CreateOrderItemDTO(product_id=pid, quantity=qty)
                for pid, qty in self.lines.items()
            ],
            payment_method=payment_method,
            delivery_address=delivery_address,
            notes=notes,
        )


class CreateOrderItemDTO(FrozenDTO):
    # price comes from the catalog at creation time, never from the caller
    product_id: UUID
    quantity: PositiveInt


class CreateOrderDTO(FrozenDTO):
    """Order creation request.

    At least one line, each product at most once, and a non-blank
    delivery address (stored stripped).
    """

    customer_id: str
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.CASH
    delivery_address: str
    notes: str = ""

    @field_validator("items")
    @classmethod
    def at_least_one_line(
        cls, value: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not value:
            raise ValueError("Order must have at least one item.")
        return value

    @field_validator("delivery_address")
    @classmethod
    def strip_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Delivery address is required.")
        return value

    @model_validator(mode="after")
    def one_line_per_product(self) -> CreateOrderDTO:
        seen = {item.product_id for item in self.items}
        if len(seen) != len(self.items):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class OrderLineDTO(FrozenDTO):
    id: UUID
    product_id: UUID
    product_name: str
    quantity: int
    price_at_order: Decimal
    line_total: Decimal


class StatusHistoryDTO(FrozenDTO):
    old_status: Optional[str]
    new_status: str
    actor_id: str
    notes: str
    created_at: datetime


class OrderDeliveryDTO(FrozenDTO):
    id: UUID
    agent_id: str
    status: str
    assigned_at: datetime
    delivered_at: Optional[datetime]
    notes: str


class OrderOutputDTO(FrozenDTO):
    id: str
    customer_id: str
    status: str
    payment_method: str
    payment_status: str
    total_amount: Decimal
    delivery_address: str
    notes: str
    version: int
    created_at: datetime
    updated_at: datetime
    items: List[OrderLineDTO]
    status_history: List[StatusHistoryDTO] = Field(default_factory=list)
    delivery: Optional[OrderDeliveryDTO] = None

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Project an order with ``items__product``, ``deliveries`` and
        ``status_history`` prefetched. Only the latest delivery is shown."""
        latest = max(order.deliveries.all(), key=lambda d: d.assigned_at, default=None)
        return cls(
            **{name: getattr(order, name) for name in _ORDER_COLUMNS},
            items=[
                OrderLineDTO(
                    id=item.id,
                    product_id=item.product_id,
                    product_name=item.product.name,
                    quantity=item.quantity,
                    price_at_order=item.price_at_order,
                    line_total=item.line_total,
                )
                for item in order.items.all()
            ],
            status_history=[
                StatusHistoryDTO.model_validate(entry)
                for entry in order.status_history.all()
            ],
            delivery=OrderDeliveryDTO.model_validate(latest) if latest else None,
        )


_ORDER_COLUMNS = (
    "id",
    "customer_id",
    "status",
    "payment_method",
    "payment_status",
    "total_amount",
    "delivery_address",
    "notes",
    "version",
    "created_at",
    "updated_at",
)