"""Order repository interface.

Extends ``IRepository[Order]`` with what the Order aggregate needs:
atomic creation with items, status history, compare-and-swap updates and
the read projections used by dashboards.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, order_id: str, data: Dict[str, Any]) -> Order:
        """Insert the order header keyed by *order_id* together with its items.

        ``data`` must include ``customer_id``, ``payment_method``,
        ``delivery_address``, ``notes`` and ``items`` (dicts with
        ``product_id``, ``quantity``, ``price_at_order``).  Raises
        ``IntegrityError`` if *order_id* is taken.
        """

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        new_status: str,
        old_status: Optional[str] = None,
        actor_id: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        """Append a status change to the order's audit trail."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        """List orders, newest first, with optional ORM filters."""

    @abstractmethod
    def list_by_customer(self, customer_id: str) -> List[Order]:
        """Orders placed by *customer_id*, newest first."""

    @abstractmethod
    def list_assigned_to_agent(self, agent_id: str) -> List[Order]:
        """Orders with any delivery assigned to *agent_id*, newest first."""

    @abstractmethod
    def list_delivered_by_agent(
        self, agent_id: str, window_start: datetime, window_end: datetime
    ) -> List[Order]:
        """Orders whose delivery by *agent_id* is delivered and that were
        created in ``[window_start, window_end)``."""

    @abstractmethod
    def totals(self, since: datetime) -> Dict[str, Any]:
        """Dashboard figures: ``total_orders``, ``total_revenue``,
        ``orders_since``, ``revenue_since``, ``open_orders``,
        ``assigned_orders``."""
