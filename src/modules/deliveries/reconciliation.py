"""Agent earnings reconciliation.

Derives collected vs. outstanding amounts from the orders an agent has
delivered.  Nothing is stored: every call rescans the current rows.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Tuple

import structlog
from django.utils import timezone

from modules.deliveries.dtos import EarningsSummaryDTO
from modules.deliveries.exceptions import InvalidReportWindow
from modules.orders.constants import PaymentMethod, PaymentStatus
from shared.infrastructure.db import translate_store_errors

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


def day_window(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Half-open ``[local midnight, next local midnight)`` for *day*."""
    tz = tz or timezone.get_current_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


class PaymentReconciler:
    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    @translate_store_errors
    def summarize(
        self, agent_id: str, window_start: datetime, window_end: datetime
    ) -> EarningsSummaryDTO:
        """Partition the agent's delivered orders in the window by payment.

        Orders count when their delivery by *agent_id* is ``delivered`` and
        the order was created in ``[window_start, window_end)``.
        """
        if window_end <= window_start:
            raise InvalidReportWindow(
                f"Window end {window_end.isoformat()} must be after "
                f"start {window_start.isoformat()}."
            )

        orders = self._order_repo.list_delivered_by_agent(
            agent_id, window_start, window_end
        )

        cash = upi = other = unpaid = ZERO
        for order in orders:
            amount = order.total_amount
            if order.payment_status != PaymentStatus.PAID:
                unpaid += amount
            elif order.payment_method == PaymentMethod.CASH:
                cash += amount
            elif order.payment_method == PaymentMethod.UPI:
                upi += amount
            else:
                other += amount

        collected = cash + upi
        summary = EarningsSummaryDTO(
            agent_id=agent_id,
            window_start=window_start,
            window_end=window_end,
            cash=cash,
            upi=upi,
            other=other,
            unpaid=unpaid,
            collected=collected,
            total=collected + other + unpaid,
            order_count=len(orders),
        )
        logger.debug(
            "earnings.summarized",
            agent_id=agent_id,
            order_count=summary.order_count,
            total=str(summary.total),
        )
        return summary
