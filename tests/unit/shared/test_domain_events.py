"""Unit tests for domain events, the outbox payload and the event bus."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from modules.deliveries.events import DeliveryAssigned
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.models import Order
from shared.domain.events import DomainEvent, UnknownEventType
from shared.infrastructure.bus import InMemoryEventBus
from shared.infrastructure.outbox import serialize_event_payload

pytestmark = pytest.mark.unit


def test_order_registers_and_clears_domain_events():
    order = Order(
        id="APR000001",
        customer_id="customer-1",
        total_amount=Decimal("11.00"),
        delivery_address="12 Park Street",
    )

    assert order.domain_events == []

    event = OrderCreated(aggregate_id=order.id, customer_id="customer-1")
    order.add_domain_event(event)

    assert order.domain_events == [event]
    assert event.event_name == "OrderCreated"

    order.clear_domain_events()
    assert order.domain_events == []


def test_payload_round_trips_through_registry():
    event = OrderStatusChanged(
        aggregate_id="APR000002", old_status="pending", new_status="assigned"
    )
    payload = serialize_event_payload(event)

    assert payload["event_name"] == "OrderStatusChanged"
    assert isinstance(payload["event_id"], str)

    rebuilt = DomainEvent.from_payload("OrderStatusChanged", payload)
    assert rebuilt == event


def test_unknown_event_type_is_rejected():
    with pytest.raises(UnknownEventType):
        DomainEvent.from_payload("NoSuchEvent", {"aggregate_id": "x"})


class TestInMemoryEventBus:
    def test_dispatches_to_exact_class_subscribers(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(DeliveryAssigned, handler)

        event = DeliveryAssigned(aggregate_id="d-1", order_id="APR000001", agent_id="a")
        bus.publish(event)
        bus.publish(OrderCreated(aggregate_id="APR000001"))

        handler.handle.assert_called_once_with(event)

    def test_subscribe_is_idempotent(self):
        bus = InMemoryEventBus()
        handler = MagicMock()
        bus.subscribe(DeliveryAssigned, handler)
        bus.subscribe(DeliveryAssigned, handler)
        assert len(bus.handlers_for(DeliveryAssigned)) == 1
