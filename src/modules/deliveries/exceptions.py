"""Delivery domain exceptions."""

from __future__ import annotations

from typing import Optional

from shared.domain.exceptions import DomainError


class AssignmentError(DomainError):
    """The order cannot receive a new delivery (one is already active).

    Also raised by ``reassign`` when there is nothing to reassign.
    """

    code = "assignment_rejected"

    def __init__(
        self, order_id: str, message: str, delivery_id: Optional[str] = None
    ) -> None:
        self.order_id = order_id
        self.delivery_id = delivery_id
        super().__init__(message)


class DeliveryNotFound(DomainError):
    code = "delivery_not_found"


class InvalidDeliveryUpdate(DomainError):
    """Malformed delivery request (blank agent, payment without delivery)."""

    code = "invalid_delivery_update"


class InvalidReportWindow(DomainError):
    """The reporting window is empty or reversed."""

    code = "invalid_window"
