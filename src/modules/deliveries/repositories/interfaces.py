"""Delivery repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery


class IDeliveryRepository(IRepository["Delivery"]):
    """Repository contract for Delivery records."""

    @abstractmethod
    def create(self, order_id: str, agent_id: str, notes: str = "") -> Delivery:
        """Insert a pending delivery.

        Raises ``IntegrityError`` if the order already has an active one.
        """

    @abstractmethod
    def get_active_for_order(
        self, order_id: str, for_update: bool = False
    ) -> Optional[Delivery]:
        """The order's pending / in_progress delivery, if any."""

    @abstractmethod
    def get_latest_for_order(self, order_id: str) -> Optional[Delivery]:
        """Most recently assigned delivery of the order, any status."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Delivery]:
        """List deliveries, most recently assigned first."""
