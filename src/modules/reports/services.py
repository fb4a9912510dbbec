"""Side-effect-free query views over the order lifecycle.

Every method reads the latest committed state and writes nothing, so
calling one twice with no mutation in between returns the same result.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

import structlog
from django.utils import timezone

from modules.deliveries.dtos import EarningsSummaryDTO
from modules.deliveries.reconciliation import PaymentReconciler, day_window
from modules.orders.dtos import OrderOutputDTO
from modules.reports.dtos import (
    DashboardSummaryDTO,
    DataSnapshotDTO,
    ProductSnapshotDTO,
    StockSummaryDTO,
)
from shared.infrastructure.db import translate_store_errors

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class QueryViews:
    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        reconciler: Optional[PaymentReconciler] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._reconciler = reconciler or PaymentReconciler(order_repository)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @translate_store_errors
    def orders_by_customer(self, customer_id: str) -> List[OrderOutputDTO]:
        return [
            OrderOutputDTO.from_entity(order)
            for order in self._order_repo.list_by_customer(customer_id)
        ]

    @translate_store_errors
    def orders_assigned_to_agent(self, agent_id: str) -> List[OrderOutputDTO]:
        return [
            OrderOutputDTO.from_entity(order)
            for order in self._order_repo.list_assigned_to_agent(agent_id)
        ]

    @translate_store_errors
    def order_by_id(self, order_id: str) -> Optional[OrderOutputDTO]:
        order = self._order_repo.get_by_id(order_id)
        return OrderOutputDTO.from_entity(order) if order else None

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def earnings_summary(
        self,
        agent_id: str,
        day: Optional[date] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> EarningsSummaryDTO:
        """Earnings for an explicit window, or for *day* (default today)."""
        if window_start is None or window_end is None:
            window_start, window_end = day_window(day or timezone.localdate())
        return self._reconciler.summarize(agent_id, window_start, window_end)

    @translate_store_errors
    def stock_summary(self) -> StockSummaryDTO:
        counts = self._product_repo.stock_counts()
        return StockSummaryDTO(
            total_products=counts["total"],
            available_products=counts["available"],
            tracked_products=counts["tracked"],
            out_of_stock_products=counts["out_of_stock"],
        )

    @translate_store_errors
    def dashboard_summary(self, today: Optional[date] = None) -> DashboardSummaryDTO:
        since, _ = day_window(today or timezone.localdate())
        figures = self._order_repo.totals(since)
        return DashboardSummaryDTO(
            total_orders=figures["total_orders"],
            total_revenue=figures["total_revenue"],
            today_orders=figures["orders_since"],
            today_revenue=figures["revenue_since"],
            pending_deliveries=figures["open_orders"],
            assigned_deliveries=figures["assigned_orders"],
        )

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    @translate_store_errors
    def refresh(self) -> DataSnapshotDTO:
        """Reload orders and products for dashboards in one snapshot."""
        snapshot = DataSnapshotDTO(
            orders=[
                OrderOutputDTO.from_entity(order) for order in self._order_repo.list()
            ],
            products=[
                ProductSnapshotDTO.from_entity(product)
                for product in self._product_repo.list()
            ],
        )
        logger.debug(
            "reports.refreshed",
            order_count=len(snapshot.orders),
            product_count=len(snapshot.products),
        )
        return snapshot
