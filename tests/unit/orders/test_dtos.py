"""Unit tests for OrderDraft and CreateOrderDTO."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, OrderDraft

pytestmark = pytest.mark.unit


class TestOrderDraft:
    def test_add_accumulates_quantity(self):
        pid = uuid4()
        draft = OrderDraft().add(pid).add(pid, 2)
        assert draft.lines == {pid: 3}

    def test_mutators_return_new_drafts(self):
        pid = uuid4()
        empty = OrderDraft()
        filled = empty.add(pid)
        assert empty.is_empty
        assert not filled.is_empty

    def test_zero_quantity_removes_line(self):
        pid = uuid4()
        draft = OrderDraft().add(pid, 2).set_quantity(pid, 0)
        assert draft.is_empty

    def test_remove(self):
        a, b = uuid4(), uuid4()
        draft = OrderDraft().add(a).add(b).remove(a)
        assert draft.lines == {b: 1}

    def test_rejects_non_positive_quantities(self):
        with pytest.raises(ValidationError):
            OrderDraft(lines={uuid4(): 0})

    def test_to_create_dto(self):
        pid = uuid4()
        dto = OrderDraft().add(pid, 2).to_create_dto(
            customer_id="customer-1",
            payment_method=PaymentMethod.UPI,
            delivery_address="  7 Lake Road  ",
        )
        assert dto.items == [CreateOrderItemDTO(product_id=pid, quantity=2)]
        assert dto.payment_method == PaymentMethod.UPI
        assert dto.delivery_address == "7 Lake Road"

    def test_empty_draft_cannot_be_submitted(self):
        with pytest.raises(ValidationError, match="at least one item"):
            OrderDraft().to_create_dto(
                customer_id="customer-1",
                payment_method=PaymentMethod.CASH,
                delivery_address="7 Lake Road",
            )


class TestCreateOrderDTO:
    def _dto(self, **overrides):
        data = {
            "customer_id": "customer-1",
            "items": [{"product_id": uuid4(), "quantity": 1}],
            "delivery_address": "7 Lake Road",
        }
        data.update(overrides)
        return CreateOrderDTO(**data)

    def test_defaults(self):
        dto = self._dto()
        assert dto.payment_method == PaymentMethod.CASH
        assert dto.notes == ""

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            self._dto(items=[{"product_id": uuid4(), "quantity": 0}])

    def test_duplicate_products_rejected(self):
        pid = uuid4()
        with pytest.raises(ValidationError, match="Duplicate"):
            self._dto(
                items=[
                    {"product_id": pid, "quantity": 1},
                    {"product_id": pid, "quantity": 2},
                ]
            )

    def test_blank_address_rejected(self):
        with pytest.raises(ValidationError):
            self._dto(delivery_address="   ")

    def test_is_frozen(self):
        dto = self._dto()
        with pytest.raises(ValidationError):
            dto.notes = "changed"
