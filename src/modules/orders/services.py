"""Order service layer (Use Cases).

Orchestrates order creation, status management, cancellation and payment
bookkeeping.  All write operations are atomic; the service defines the
unit-of-work boundary.

Business rules enforced:
- Customers create and cancel only their own orders; admins act on any.
- Products must exist and be available; prices are snapshotted.
- ``total_amount`` = Σ quantity × price_at_order, computed once.
- Order header and items are written as one unit.
- Status transitions validated against ``ORDER_STATE_MACHINE``.
- Writes use compare-and-swap on ``version`` (stale -> ``ConflictError``).
- Every status change is recorded in the history and the outbox.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.deliveries.constants import DELIVERY_STATE_MACHINE, DeliveryStatus
from modules.orders.constants import (
    ORDER_STATE_MACHINE,
    PAYMENT_STATE_MACHINE,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    OrderNotFound,
    OrderValidationError,
    ProductNotFound,
    ProductUnavailable,
)
from modules.orders.identifiers import OrderIdGenerator
from shared.domain.exceptions import AuthorizationError, IllegalTransitionError
from shared.infrastructure.db import translate_store_errors

if TYPE_CHECKING:
    from modules.core.principal import Principal
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        delivery_repository: IDeliveryRepository,
        id_generator: Optional[OrderIdGenerator] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._delivery_repo = delivery_repository
        self._id_generator = id_generator or OrderIdGenerator()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @translate_store_errors
    @transaction.atomic
    def create_order(self, principal: Principal, dto: CreateOrderDTO) -> Order:
        """Create a new order with its items as one unit.

        Steps:
        1. Authorise: a customer for itself, or an admin.
        2. Resolve every product; all must exist and be available.
        3. Snapshot prices and compute the total.
        4. Issue an id and persist header + items (retrying on id collision).
        5. Record initial history and the ``OrderCreated`` event.

        Raises:
            AuthorizationError: principal may not order for this customer.
            ProductNotFound: a product does not exist.
            ProductUnavailable: a product is not available for sale.
            ExhaustedRetriesError: no unique id within the retry budget.
        """
        log = logger.bind(customer_id=dto.customer_id, principal_id=principal.id)
        own_order = principal.is_customer and principal.id == dto.customer_id
        if not (principal.is_admin or own_order):
            log.warning("order.create_forbidden")
            raise AuthorizationError(principal.id, f"order for {dto.customer_id}")

        log.info("order.creation_started", item_count=len(dto.items))

        requested = [item.product_id for item in dto.items]
        products = self._product_repo.get_many(requested)
        missing = [pid for pid in requested if pid not in products]
        if missing:
            log.warning("order.unknown_products", product_ids=[str(p) for p in missing])
            raise ProductNotFound(missing)
        unavailable = [pid for pid in requested if not products[pid].is_available]
        if unavailable:
            log.warning(
                "order.unavailable_products",
                product_ids=[str(p) for p in unavailable],
            )
            raise ProductUnavailable(unavailable)

        data: Dict[str, Any] = {
            "customer_id": dto.customer_id,
            "payment_method": dto.payment_method,
            "delivery_address": dto.delivery_address,
            "notes": dto.notes,
            "items": [
                {
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "price_at_order": products[item.product_id].price,
                }
                for item in dto.items
            ],
        }

        order = self._id_generator.issue(
            lambda order_id: self._order_repo.create(order_id, data)
        )

        self._order_repo.add_history(
            order_id=order.id,
            new_status=OrderStatus.PENDING,
            actor_id=principal.id,
            notes="Order created",
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                customer_id=order.customer_id,
                total_amount=str(order.total_amount),
            )
        )
        self._order_repo.save(order)

        log.info(
            "order.created",
            order_id=order.id,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(order.id) or order

    @translate_store_errors
    @transaction.atomic
    def update_status(
        self,
        principal: Principal,
        order_id: str,
        new_status: str,
        expected_version: Optional[int] = None,
        notes: str = "",
    ) -> Order:
        """Admin status change.

        ``assigned`` is only reachable through the delivery assigner, and
        ``delivered`` only through the delivery while one is active.
        ``cancelled`` is routed through ``cancel_order``.

        Raises:
            AuthorizationError: principal is not an admin.
            OrderNotFound: order does not exist.
            IllegalTransitionError: transition not in the table.
            OrderValidationError: transition owned by the delivery flow.
            ConflictError: ``expected_version`` is stale.
        """
        if not principal.is_admin:
            raise AuthorizationError(principal.id, "change order status")
        if new_status == OrderStatus.CANCELLED:
            return self.cancel_order(principal, order_id, expected_version, notes)

        order = self._get_for_update(order_id)
        ORDER_STATE_MACHINE.validate(order.status, new_status, entity_id=order.id)

        if new_status == OrderStatus.ASSIGNED:
            raise OrderValidationError(
                f"Order {order.id} is assigned by creating a delivery."
            )
        if new_status == OrderStatus.DELIVERED and self._delivery_repo.get_active_for_order(
            order.id
        ):
            raise OrderValidationError(
                f"Order {order.id} has an active delivery; complete it instead."
            )

        order = self.apply_transition(
            order,
            new_status,
            actor_id=principal.id,
            notes=notes,
            expected_version=expected_version,
        )
        return self._order_repo.get_by_id(order.id) or order

    @translate_store_errors
    @transaction.atomic
    def cancel_order(
        self,
        principal: Principal,
        order_id: str,
        expected_version: Optional[int] = None,
        notes: str = "",
    ) -> Order:
        """Cancel an order and fail its active delivery, if any.

        Admins may cancel any non-terminal order; customers only their own
        order while it is still ``pending``.

        Raises:
            AuthorizationError: principal may not cancel this order.
            OrderNotFound: order does not exist.
            IllegalTransitionError: order is already terminal.
            ConflictError: ``expected_version`` is stale.
        """
        order = self._get_for_update(order_id)
        log = logger.bind(order_id=order.id, current_status=order.status)

        if not principal.is_admin:
            owns = principal.is_customer and principal.id == order.customer_id
            if not owns:
                log.warning("order.cancel_forbidden", principal_id=principal.id)
                raise AuthorizationError(principal.id, f"cancel order {order.id}")
            if order.status != OrderStatus.PENDING:
                log.warning("order.cancel_not_allowed")
                raise IllegalTransitionError(
                    "Order", order.status, OrderStatus.CANCELLED, entity_id=order.id
                )

        ORDER_STATE_MACHINE.validate(
            order.status, OrderStatus.CANCELLED, entity_id=order.id
        )

        active = self._delivery_repo.get_active_for_order(order.id, for_update=True)
        if active is not None:
            DELIVERY_STATE_MACHINE.validate(active.status, DeliveryStatus.FAILED)
            self._delivery_repo.compare_and_swap(
                str(active.id),
                active.version,
                {
                    "status": DeliveryStatus.FAILED,
                    "notes": _append_note(active.notes, "Order cancelled"),
                },
            )
            log.info("order.delivery_failed_on_cancel", delivery_id=str(active.id))

        order = self.apply_transition(
            order,
            OrderStatus.CANCELLED,
            actor_id=principal.id,
            notes=notes or "Order cancelled",
            expected_version=expected_version,
        )
        order.add_domain_event(OrderCancelled(aggregate_id=order.id))
        self._order_repo.save(order)

        log.info("order.cancelled")
        return self._order_repo.get_by_id(order.id) or order

    @translate_store_errors
    @transaction.atomic
    def mark_paid(
        self,
        principal: Principal,
        order_id: str,
        payment_method: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Record that the order's amount was collected.

        Allowed for admins and for the agent whose delivery of the order is
        still active or was delivered. A failed delivery gives no right to
        collect.

        Raises:
            AuthorizationError: principal may not collect for this order.
            OrderNotFound: order does not exist.
            IllegalTransitionError: already paid, or the order is cancelled.
            ConflictError: ``expected_version`` is stale.
        """
        order = self._get_for_update(order_id)
        if not principal.is_admin:
            delivery = self._delivery_repo.get_latest_for_order(order.id)
            holds = (
                principal.is_agent
                and delivery is not None
                and delivery.agent_id == principal.id
                and delivery.holds_collection
            )
            if not holds:
                raise AuthorizationError(principal.id, f"collect payment for {order.id}")

        changes = self.payment_changes(order, payment_method)
        order = self._order_repo.compare_and_swap(
            order.id,
            order.version if expected_version is None else expected_version,
            changes,
        )
        self._record_payment(order)
        return self._order_repo.get_by_id(order.id) or order

    # ------------------------------------------------------------------
    # Building blocks shared with the delivery flow (caller authorises)
    # ------------------------------------------------------------------

    def apply_transition(
        self,
        order: Order,
        new_status: str,
        actor_id: str = "",
        notes: str = "",
        expected_version: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
    ) -> Order:
        """Validate and write a status change with CAS, history and event.

        *changes* are extra columns written in the same UPDATE (e.g. payment
        fields when a delivery completes with cash in hand).
        """
        ORDER_STATE_MACHINE.validate(order.status, new_status, entity_id=order.id)
        old_status = order.status
        updated = self._order_repo.compare_and_swap(
            order.id,
            order.version if expected_version is None else expected_version,
            {**(changes or {}), "status": new_status},
        )
        self._order_repo.add_history(
            order_id=updated.id,
            new_status=new_status,
            old_status=old_status,
            actor_id=actor_id,
            notes=notes,
        )
        updated.add_domain_event(
            OrderStatusChanged(
                aggregate_id=updated.id,
                old_status=old_status,
                new_status=new_status,
            )
        )
        if changes and changes.get("payment_status") == PaymentStatus.PAID:
            self._add_paid_event(updated)
        self._order_repo.save(updated)
        logger.info(
            "order.status_updated",
            order_id=updated.id,
            old_status=old_status,
            new_status=new_status,
        )
        return updated

    def payment_changes(
        self, order: Order, payment_method: Optional[str] = None
    ) -> Dict[str, Any]:
        """Columns to write when *order* is paid; validates the payment FSM."""
        if order.status == OrderStatus.CANCELLED:
            raise IllegalTransitionError(
                "Order", order.status, PaymentStatus.PAID, entity_id=order.id
            )
        PAYMENT_STATE_MACHINE.validate(
            order.payment_status, PaymentStatus.PAID, entity_id=order.id
        )
        changes: Dict[str, Any] = {"payment_status": PaymentStatus.PAID}
        if payment_method and payment_method != PaymentMethod.NONE:
            changes["payment_method"] = payment_method
        return changes

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` if the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_for(self, principal: Principal, order_id: str) -> Order:
        """Like ``get_order`` but only for orders *principal* may see.

        Customers see their own orders, agents the orders they were ever
        assigned, admins everything.
        """
        order = self.get_order(order_id)
        if principal.is_admin:
            return order
        if principal.is_customer and order.customer_id == principal.id:
            return order
        if principal.is_agent and any(
            delivery.agent_id == principal.id for delivery in order.deliveries.all()
        ):
            return order
        raise AuthorizationError(principal.id, f"view order {order.id}")

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _record_payment(self, order: Order) -> None:
        self._add_paid_event(order)
        self._order_repo.save(order)
        logger.info(
            "order.paid",
            order_id=order.id,
            payment_method=order.payment_method,
            amount=str(order.total_amount),
        )

    @staticmethod
    def _add_paid_event(order: Order) -> None:
        order.add_domain_event(
            OrderPaid(
                aggregate_id=order.id,
                payment_method=order.payment_method,
                amount=str(Decimal(order.total_amount)),
            )
        )


def _append_note(existing: str, note: str) -> str:
    return f"{existing}\n{note}" if existing else note
