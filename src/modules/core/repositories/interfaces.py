"""Generic repository interface (Dependency Inversion Principle).

Service-layer code depends on these abstractions, never on the Django ORM
directly.  Aggregates in this system are never physically deleted, so the
base contract has no ``delete``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key, ``None`` if absent."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Retrieve an entity with a row lock where the backend supports it."""

    @abstractmethod
    def compare_and_swap(
        self, id: str, expected_version: int, changes: Dict[str, Any]
    ) -> T:
        """Apply *changes* only if the stored ``version`` equals *expected_version*.

        Increments ``version`` and refreshes ``updated_at``.  Raises
        ``ConflictError`` when the row was modified concurrently.
        """

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist a new entity and flush its domain events to the outbox."""
