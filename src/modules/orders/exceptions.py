"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  The API
layer catches these and translates them into HTTP responses.
"""

from __future__ import annotations

from typing import Iterable

from shared.domain.exceptions import DomainError


class OrderValidationError(DomainError):
    """Malformed order input; rejected before any write."""

    code = "invalid_order"


class ProductNotFound(OrderValidationError):
    """One or more products referenced by the order do not exist."""

    code = "product_not_found"

    def __init__(self, product_ids: Iterable[object]) -> None:
        self.product_ids = sorted(str(pid) for pid in product_ids)
        super().__init__(f"Unknown products: {', '.join(self.product_ids)}.")


class ProductUnavailable(OrderValidationError):
    """One or more products are not currently available for sale."""

    code = "product_unavailable"

    def __init__(self, product_ids: Iterable[object]) -> None:
        self.product_ids = sorted(str(pid) for pid in product_ids)
        super().__init__(f"Unavailable products: {', '.join(self.product_ids)}.")


class OrderNotFound(DomainError):
    """The requested order does not exist."""

    code = "order_not_found"


class ExhaustedRetriesError(DomainError):
    """No unique order id could be issued within the retry budget."""

    code = "order_id_exhausted"

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Could not issue a unique order id after {attempts} attempts.")
