"""Product repository interface (read side of the catalog collaborator)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from uuid import UUID

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(ABC):
    """Read-only catalog contract consumed by order creation and reports."""

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """Return live products keyed by id; unknown ids are simply absent."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Product]:
        """Live product by id, or ``None``."""

    @abstractmethod
    def list(self) -> List[Product]:
        """Return every live product."""

    @abstractmethod
    def stock_counts(self) -> Dict[str, int]:
        """Aggregate counts: ``total``, ``available``, ``tracked``, ``out_of_stock``."""
