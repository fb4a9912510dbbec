"""Unit tests for DeliveryService.

Covers:
- The delivery lattice (pending -> in_progress -> delivered / failed).
- ``delivered`` completes the order, optionally collecting payment.
- ``failed`` leaves the order assigned for a new delivery.
- Agent ownership, notes and version conflicts.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest
from django.utils import timezone

from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.exceptions import DeliveryNotFound, InvalidDeliveryUpdate
from modules.deliveries.reconciliation import day_window
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order
from shared.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    IllegalTransitionError,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def assigned(assigner, place_order, admin, agent7):
    """An order of $11.00 with a pending delivery held by agent7."""
    order = place_order()
    delivery = assigner.assign_one(admin, order.id, agent7.id)
    return order, delivery


class TestLifecycle:
    def test_delivered_with_cash_completes_order(
        self, delivery_service, reconciler, assigned, agent7
    ):
        order, delivery = assigned
        delivery_service.update_status(
            agent7, str(delivery.id), DeliveryStatus.IN_PROGRESS
        )

        done = delivery_service.update_status(
            agent7,
            str(delivery.id),
            DeliveryStatus.DELIVERED,
            payment_collected=True,
            payment_method=PaymentMethod.CASH,
        )

        assert done.status == DeliveryStatus.DELIVERED
        assert done.delivered_at is not None
        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED
        assert order.payment_status == PaymentStatus.PAID
        assert order.payment_method == PaymentMethod.CASH

        summary = reconciler.summarize(agent7.id, *day_window(timezone.localdate()))
        assert summary.cash == Decimal("11.00")
        assert summary.unpaid == Decimal("0.00")

    def test_delivered_without_payment_leaves_it_pending(
        self, delivery_service, assigned, agent7
    ):
        order, delivery = assigned
        delivery_service.update_status(
            agent7, str(delivery.id), DeliveryStatus.IN_PROGRESS
        )
        delivery_service.update_status(agent7, str(delivery.id), DeliveryStatus.DELIVERED)

        order.refresh_from_db()
        assert order.status == OrderStatus.DELIVERED
        assert order.payment_status == PaymentStatus.PENDING

    def test_pending_cannot_jump_to_delivered(
        self, delivery_service, assigned, agent7
    ):
        order, delivery = assigned

        with pytest.raises(IllegalTransitionError) as exc_info:
            delivery_service.update_status(
                agent7, str(delivery.id), DeliveryStatus.DELIVERED
            )

        assert exc_info.value.entity == "Delivery"
        delivery.refresh_from_db()
        assert delivery.status == DeliveryStatus.PENDING
        assert Order.objects.get(id=order.id).status == OrderStatus.ASSIGNED

    def test_terminal_delivery_cannot_move(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        delivery_service.update_status(agent7, str(delivery.id), DeliveryStatus.FAILED)

        with pytest.raises(IllegalTransitionError):
            delivery_service.update_status(
                agent7, str(delivery.id), DeliveryStatus.IN_PROGRESS
            )

    def test_failed_leaves_order_assigned(self, delivery_service, assigned, agent7):
        order, delivery = assigned

        failed = delivery_service.update_status(
            agent7, str(delivery.id), DeliveryStatus.FAILED, notes="Nobody home"
        )

        assert failed.status == DeliveryStatus.FAILED
        assert failed.notes == "Nobody home"
        assert failed.delivered_at is None
        assert Order.objects.get(id=order.id).status == OrderStatus.ASSIGNED

    def test_payment_requires_delivery(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        with pytest.raises(InvalidDeliveryUpdate):
            delivery_service.update_status(
                agent7,
                str(delivery.id),
                DeliveryStatus.IN_PROGRESS,
                payment_collected=True,
            )

    def test_collecting_on_paid_order_rolls_back(
        self, delivery_service, order_service, assigned, admin, agent7
    ):
        order, delivery = assigned
        order_service.mark_paid(admin, order.id, PaymentMethod.UPI)
        delivery_service.update_status(
            agent7, str(delivery.id), DeliveryStatus.IN_PROGRESS
        )

        with pytest.raises(IllegalTransitionError):
            delivery_service.update_status(
                agent7,
                str(delivery.id),
                DeliveryStatus.DELIVERED,
                payment_collected=True,
            )

        delivery.refresh_from_db()
        assert delivery.status == DeliveryStatus.IN_PROGRESS
        assert Order.objects.get(id=order.id).status == OrderStatus.ASSIGNED

    def test_stale_version_is_a_conflict(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        with pytest.raises(ConflictError):
            delivery_service.update_status(
                agent7,
                str(delivery.id),
                DeliveryStatus.IN_PROGRESS,
                expected_version=delivery.version + 1,
            )


class TestAuthorization:
    def test_other_agent_cannot_update(self, delivery_service, assigned, agent9):
        _, delivery = assigned
        with pytest.raises(AuthorizationError):
            delivery_service.update_status(
                agent9, str(delivery.id), DeliveryStatus.IN_PROGRESS
            )

    def test_customer_cannot_update(self, delivery_service, assigned, customer):
        _, delivery = assigned
        with pytest.raises(AuthorizationError):
            delivery_service.update_status(
                customer, str(delivery.id), DeliveryStatus.IN_PROGRESS
            )

    def test_admin_can_update_any(self, delivery_service, assigned, admin):
        _, delivery = assigned
        updated = delivery_service.update_status(
            admin, str(delivery.id), DeliveryStatus.IN_PROGRESS
        )
        assert updated.status == DeliveryStatus.IN_PROGRESS

    @pytest.mark.parametrize("delivery_id", ["not-a-uuid", None])
    def test_unknown_delivery(self, delivery_service, admin, delivery_id):
        with pytest.raises(DeliveryNotFound):
            delivery_service.update_status(
                admin, delivery_id or str(uuid4()), DeliveryStatus.IN_PROGRESS
            )


class TestNotes:
    def test_notes_are_appended(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        delivery_service.append_notes(agent7, str(delivery.id), "Gate code 1234")
        updated = delivery_service.append_notes(agent7, str(delivery.id), "Left at door")

        assert updated.notes == "Gate code 1234\nLeft at door"
        assert updated.version == delivery.version + 2

    def test_terminal_delivery_accepts_notes(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        delivery_service.update_status(agent7, str(delivery.id), DeliveryStatus.FAILED)

        updated = delivery_service.append_notes(agent7, str(delivery.id), "Retry Monday")

        assert updated.status == DeliveryStatus.FAILED
        assert updated.notes.endswith("Retry Monday")

    def test_blank_note_rejected(self, delivery_service, assigned, agent7):
        _, delivery = assigned
        with pytest.raises(InvalidDeliveryUpdate):
            delivery_service.append_notes(agent7, str(delivery.id), "  ")


class TestQueries:
    def test_customer_sees_delivery_of_own_order(
        self, delivery_service, assigned, customer, other_customer
    ):
        _, delivery = assigned

        assert delivery_service.get_delivery(customer, str(delivery.id)).id == delivery.id
        with pytest.raises(AuthorizationError):
            delivery_service.get_delivery(other_customer, str(delivery.id))

    def test_list_is_scoped_by_role(
        self,
        delivery_service,
        assigner,
        place_order,
        admin,
        agent7,
        agent9,
        customer,
        other_customer,
    ):
        mine = place_order()
        theirs = place_order(principal=other_customer)
        assigner.assign_one(admin, mine.id, agent7.id)
        assigner.assign_one(admin, theirs.id, agent9.id)

        assert len(delivery_service.list_for_principal(admin)) == 2
        assert [d.order_id for d in delivery_service.list_for_principal(agent7)] == [
            mine.id
        ]
        assert [d.order_id for d in delivery_service.list_for_principal(customer)] == [
            mine.id
        ]
        assert (
            delivery_service.list_for_principal(
                agent9, {"status": DeliveryStatus.DELIVERED}
            )
            == []
        )
