"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Writes that
change status go through ``compare_and_swap``: a single ``UPDATE ... WHERE
id = %s AND version = %s`` that bumps ``version``.  Zero rows updated means
another writer got there first and ``ConflictError`` is raised.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.db.models import Count, DecimalField, F, Q, QuerySet, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from modules.deliveries.constants import DeliveryStatus
from modules.orders.constants import TERMINAL_STATES, OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.domain.exceptions import ConflictError
from shared.infrastructure.outbox import flush_domain_events

logger = structlog.get_logger(__name__)

ORDERS_TOPIC = "orders"


def _with_relations(queryset: QuerySet) -> QuerySet:
    return queryset.prefetch_related(
        "items__product", "deliveries", "status_history"
    )


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, order_id: str, data: Dict[str, Any]) -> Order:
        items = data["items"]
        total = sum(
            (item["quantity"] * item["price_at_order"] for item in items),
        )
        order = Order(
            id=order_id,
            customer_id=data["customer_id"],
            payment_method=data["payment_method"],
            delivery_address=data["delivery_address"],
            notes=data.get("notes", ""),
            total_amount=total,
        )
        order.save(force_insert=True)

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                    price_at_order=item["price_at_order"],
                )
                for item in items
            ]
        )

        logger.info("order.persisted", order_id=order.id, item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @transaction.atomic
    def compare_and_swap(
        self, id: str, expected_version: int, changes: Dict[str, Any]
    ) -> Order:
        updated = Order.objects.filter(id=id, version=expected_version).update(
            **changes,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(
                "order.version_conflict",
                order_id=id,
                expected_version=expected_version,
            )
            raise ConflictError("Order", id, expected_version)
        return Order.objects.get(id=id)

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Flush the domain events collected on *entity* into the outbox.

        Field changes are written through ``compare_and_swap``; this only
        persists what the aggregate recorded about them.
        """
        flush_domain_events(entity, ORDERS_TOPIC)
        return entity

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        return _with_relations(Order.objects.filter(id=id)).first()

    def get_for_update(self, id: str) -> Optional[Order]:
        """Row-locked read; must be called inside a transaction."""
        return Order.objects.select_for_update().filter(id=id).first()

    def queryset(
        self, customer_id: Optional[str] = None, agent_id: Optional[str] = None
    ) -> QuerySet:
        """Lazy, optionally scoped QuerySet for the API filter backends."""
        queryset = Order.objects.all()
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        if agent_id is not None:
            queryset = queryset.filter(deliveries__agent_id=agent_id).distinct()
        return _with_relations(queryset).order_by("-created_at", "-id")

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = self.queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_by_customer(self, customer_id: str) -> List[Order]:
        return list(self.queryset(customer_id=customer_id))

    def list_assigned_to_agent(self, agent_id: str) -> List[Order]:
        return list(self.queryset(agent_id=agent_id))

    def list_delivered_by_agent(
        self, agent_id: str, window_start: datetime, window_end: datetime
    ) -> List[Order]:
        queryset = Order.objects.filter(
            deliveries__agent_id=agent_id,
            deliveries__status=DeliveryStatus.DELIVERED,
            created_at__gte=window_start,
            created_at__lt=window_end,
        ).distinct()
        return list(queryset.order_by("created_at", "id"))

    def totals(self, since: datetime) -> Dict[str, Any]:
        money = Coalesce(
            Sum("total_amount"),
            Value(Decimal("0.00")),
            output_field=DecimalField(max_digits=12, decimal_places=2),
        )
        figures = Order.objects.aggregate(
            total_orders=Count("id"),
            total_revenue=money,
            orders_since=Count("id", filter=Q(created_at__gte=since)),
            open_orders=Count("id", filter=~Q(status__in=TERMINAL_STATES)),
            assigned_orders=Count("id", filter=Q(status=OrderStatus.ASSIGNED)),
        )
        figures["revenue_since"] = Order.objects.filter(
            created_at__gte=since
        ).aggregate(revenue=money)["revenue"]
        return figures

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: str,
        new_status: str,
        old_status: Optional[str] = None,
        actor_id: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            actor_id=actor_id,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
        )
        return history
