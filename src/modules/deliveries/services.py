"""Delivery service layer.

``DeliveryAssigner`` links orders to agents; ``DeliveryService`` moves a
delivery through its lifecycle and keeps the parent order in step.

Business rules enforced:
- Only admins assign, bulk-assign and reassign.
- An order never has two active deliveries; assigning over one is an
  ``AssignmentError``, never a silent overwrite.
- Bulk assignment reports per-order outcomes; one failure never rolls
  back another order's assignment.
- Agents progress only their own deliveries.
- ``delivered`` on the delivery sets the order ``delivered`` in the same
  transaction; ``failed`` leaves the order for re-assignment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.deliveries.constants import DELIVERY_STATE_MACHINE, DeliveryStatus
from modules.deliveries.dtos import BulkAssignmentFailureDTO, BulkAssignmentResultDTO
from modules.deliveries.events import DeliveryAssigned, DeliveryStatusChanged
from modules.deliveries.exceptions import (
    AssignmentError,
    DeliveryNotFound,
    InvalidDeliveryUpdate,
)
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import OrderNotFound
from shared.domain.exceptions import (
    AuthorizationError,
    DependencyError,
    DomainError,
    IllegalTransitionError,
)
from shared.infrastructure.db import translate_store_errors

if TYPE_CHECKING:
    from modules.core.principal import Principal
    from modules.deliveries.models import Delivery
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


def _append_note(existing: str, note: str) -> str:
    return f"{existing}\n{note}" if existing else note


def _require_agent_id(agent_id: str) -> str:
    agent_id = (agent_id or "").strip()
    if not agent_id:
        raise InvalidDeliveryUpdate("An agent id is required.")
    return agent_id


class DeliveryAssigner:
    """Creates deliveries and moves their orders to ``assigned``."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        delivery_repository: IDeliveryRepository,
        order_service: OrderService,
    ) -> None:
        self._order_repo = order_repository
        self._delivery_repo = delivery_repository
        self._order_service = order_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @translate_store_errors
    @transaction.atomic
    def assign_one(
        self, principal: Principal, order_id: str, agent_id: str, notes: str = ""
    ) -> Delivery:
        """Assign *order_id* to *agent_id* as one atomic unit.

        Raises:
            AuthorizationError: principal is not an admin.
            InvalidDeliveryUpdate: blank agent id.
            OrderNotFound: order does not exist.
            IllegalTransitionError: order is delivered or cancelled.
            AssignmentError: order already has an active delivery.
            ConflictError: order changed concurrently.
        """
        self._require_admin(principal, "assign deliveries")
        agent_id = _require_agent_id(agent_id)
        log = logger.bind(order_id=order_id, agent_id=agent_id)

        order = self._get_order_for_update(order_id)
        if order.is_terminal:
            log.warning("delivery.assign_terminal_order", status=order.status)
            raise IllegalTransitionError(
                "Order", order.status, OrderStatus.ASSIGNED, entity_id=order.id
            )

        active = self._delivery_repo.get_active_for_order(order.id, for_update=True)
        if active is not None:
            log.warning("delivery.already_assigned", delivery_id=str(active.id))
            raise AssignmentError(
                order.id,
                f"Order {order.id} already has an active delivery "
                f"for agent {active.agent_id}.",
                delivery_id=str(active.id),
            )

        if order.status == OrderStatus.ASSIGNED:
            # Previous delivery failed; the order stays assigned.
            self._order_repo.compare_and_swap(order.id, order.version, {})
        else:
            self._order_service.apply_transition(
                order,
                OrderStatus.ASSIGNED,
                actor_id=principal.id,
                notes=f"Assigned to {agent_id}",
            )

        delivery = self._create_delivery(order.id, agent_id, notes)
        log.info("delivery.assigned", delivery_id=str(delivery.id))
        return delivery

    @translate_store_errors
    def assign_bulk(
        self, principal: Principal, order_ids: Iterable[str], agent_id: str
    ) -> BulkAssignmentResultDTO:
        """Assign each order independently and report per-order outcomes.

        Duplicate ids are processed once.  ``DependencyError`` aborts the
        batch; already committed assignments stay.
        """
        self._require_admin(principal, "assign deliveries")
        agent_id = _require_agent_id(agent_id)

        succeeded: List[str] = []
        failed: List[BulkAssignmentFailureDTO] = []
        for order_id in dict.fromkeys(order_ids):
            try:
                self.assign_one(principal, order_id, agent_id)
            except DependencyError:
                raise
            except DomainError as exc:
                failed.append(
                    BulkAssignmentFailureDTO(
                        order_id=order_id, error=exc.code, detail=str(exc)
                    )
                )
            else:
                succeeded.append(order_id)

        logger.info(
            "delivery.bulk_assigned",
            agent_id=agent_id,
            succeeded=len(succeeded),
            failed=len(failed),
        )
        return BulkAssignmentResultDTO(
            agent_id=agent_id, succeeded=succeeded, failed=failed
        )

    @translate_store_errors
    @transaction.atomic
    def reassign(
        self, principal: Principal, order_id: str, agent_id: str, notes: str = ""
    ) -> Delivery:
        """Fail the order's active delivery and assign it to *agent_id*.

        Raises:
            AssignmentError: no active delivery, or it already belongs to
                *agent_id*.
        """
        self._require_admin(principal, "reassign deliveries")
        agent_id = _require_agent_id(agent_id)
        log = logger.bind(order_id=order_id, agent_id=agent_id)

        order = self._get_order_for_update(order_id)
        active = self._delivery_repo.get_active_for_order(order.id, for_update=True)
        if active is None:
            raise AssignmentError(order.id, f"Order {order.id} has no active delivery.")
        if active.agent_id == agent_id:
            raise AssignmentError(
                order.id,
                f"Order {order.id} is already assigned to {agent_id}.",
                delivery_id=str(active.id),
            )

        previous = self._delivery_repo.compare_and_swap(
            str(active.id),
            active.version,
            {
                "status": DeliveryStatus.FAILED,
                "notes": _append_note(active.notes, f"Reassigned to {agent_id}"),
            },
        )
        previous.add_domain_event(
            DeliveryStatusChanged(
                aggregate_id=str(previous.id),
                order_id=order.id,
                old_status=active.status,
                new_status=DeliveryStatus.FAILED,
            )
        )
        self._delivery_repo.save(previous)
        self._order_repo.compare_and_swap(order.id, order.version, {})

        delivery = self._create_delivery(order.id, agent_id, notes)
        log.info(
            "delivery.reassigned",
            previous_delivery_id=str(previous.id),
            previous_agent_id=previous.agent_id,
            delivery_id=str(delivery.id),
        )
        return delivery

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_delivery(self, order_id: str, agent_id: str, notes: str) -> Delivery:
        try:
            with transaction.atomic():
                delivery = self._delivery_repo.create(order_id, agent_id, notes)
        except IntegrityError as exc:
            # A concurrent assignment won the active-delivery constraint.
            raise AssignmentError(
                order_id, f"Order {order_id} was assigned concurrently."
            ) from exc
        delivery.add_domain_event(
            DeliveryAssigned(
                aggregate_id=str(delivery.id), order_id=order_id, agent_id=agent_id
            )
        )
        self._delivery_repo.save(delivery)
        return delivery

    def _get_order_for_update(self, order_id: str) -> Order:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    @staticmethod
    def _require_admin(principal: Principal, action: str) -> None:
        if not principal.is_admin:
            logger.warning("delivery.forbidden", principal_id=principal.id, action=action)
            raise AuthorizationError(principal.id, action)


class DeliveryService:
    """Delivery lifecycle: status updates, notes, role-scoped reads."""

    def __init__(
        self,
        delivery_repository: IDeliveryRepository,
        order_repository: IOrderRepository,
        order_service: OrderService,
    ) -> None:
        self._delivery_repo = delivery_repository
        self._order_repo = order_repository
        self._order_service = order_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @translate_store_errors
    @transaction.atomic
    def update_status(
        self,
        principal: Principal,
        delivery_id: str,
        new_status: str,
        expected_version: Optional[int] = None,
        notes: Optional[str] = None,
        payment_collected: bool = False,
        payment_method: Optional[str] = None,
    ) -> Delivery:
        """Transition a delivery; ``delivered`` also delivers the order.

        With ``payment_collected`` the order is marked paid in the same
        transaction (cash in hand at the door).

        Raises:
            DeliveryNotFound: delivery does not exist.
            AuthorizationError: agent does not hold this delivery.
            InvalidDeliveryUpdate: payment collected without delivering.
            IllegalTransitionError: transition not in the table (delivery
                or order).
            ConflictError: ``expected_version`` is stale.
        """
        delivery = self._get_for_update(delivery_id)
        self._authorize(principal, delivery, f"update delivery {delivery.id}")
        log = logger.bind(
            delivery_id=str(delivery.id),
            order_id=delivery.order_id,
            old_status=delivery.status,
            new_status=new_status,
        )

        if payment_collected and new_status != DeliveryStatus.DELIVERED:
            raise InvalidDeliveryUpdate(
                "Payment can only be collected when the delivery is completed."
            )
        DELIVERY_STATE_MACHINE.validate(
            delivery.status, new_status, entity_id=str(delivery.id)
        )

        changes: Dict[str, Any] = {"status": new_status}
        if notes:
            changes["notes"] = _append_note(delivery.notes, notes)

        if new_status == DeliveryStatus.DELIVERED:
            changes["delivered_at"] = timezone.now()
            order = self._order_repo.get_for_update(delivery.order_id)
            order_changes = (
                self._order_service.payment_changes(order, payment_method)
                if payment_collected
                else None
            )
            self._order_service.apply_transition(
                order,
                OrderStatus.DELIVERED,
                actor_id=principal.id,
                notes=f"Delivered by {delivery.agent_id}",
                changes=order_changes,
            )

        updated = self._delivery_repo.compare_and_swap(
            str(delivery.id),
            delivery.version if expected_version is None else expected_version,
            changes,
        )
        updated.add_domain_event(
            DeliveryStatusChanged(
                aggregate_id=str(updated.id),
                order_id=updated.order_id,
                old_status=delivery.status,
                new_status=new_status,
            )
        )
        self._delivery_repo.save(updated)

        log.info("delivery.status_updated", payment_collected=payment_collected)
        return updated

    @translate_store_errors
    @transaction.atomic
    def append_notes(
        self,
        principal: Principal,
        delivery_id: str,
        note: str,
        expected_version: Optional[int] = None,
    ) -> Delivery:
        """Append a note; allowed on terminal deliveries too."""
        note = (note or "").strip()
        if not note:
            raise InvalidDeliveryUpdate("Note must not be blank.")
        delivery = self._get_for_update(delivery_id)
        self._authorize(principal, delivery, f"annotate delivery {delivery.id}")
        updated = self._delivery_repo.compare_and_swap(
            str(delivery.id),
            delivery.version if expected_version is None else expected_version,
            {"notes": _append_note(delivery.notes, note)},
        )
        logger.info("delivery.notes_appended", delivery_id=str(delivery.id))
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_delivery(self, principal: Principal, delivery_id: str) -> Delivery:
        delivery = self._delivery_repo.get_by_id(delivery_id)
        if not delivery:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        if principal.is_customer and delivery.order.customer_id == principal.id:
            return delivery
        self._authorize(principal, delivery, f"view delivery {delivery.id}")
        return delivery

    def list_for_principal(
        self, principal: Principal, filters: Optional[Dict[str, Any]] = None
    ) -> List[Delivery]:
        """Admins see every delivery, agents their own, customers those of
        their orders."""
        scoped: Dict[str, Any] = dict(filters or {})
        if principal.is_agent:
            scoped["agent_id"] = principal.id
        elif principal.is_customer:
            scoped["order__customer_id"] = principal.id
        return self._delivery_repo.list(scoped)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update(self, delivery_id: str) -> Delivery:
        delivery = self._delivery_repo.get_for_update(delivery_id)
        if not delivery:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        return delivery

    @staticmethod
    def _authorize(principal: Principal, delivery: Delivery, action: str) -> None:
        if principal.is_admin:
            return
        if principal.is_agent and delivery.agent_id == principal.id:
            return
        logger.warning(
            "delivery.forbidden",
            principal_id=principal.id,
            delivery_id=str(delivery.id),
        )
        raise AuthorizationError(principal.id, action)
