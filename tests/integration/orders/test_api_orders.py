"""Integration tests for the order endpoints.

Covers:
- Create 201 / 400 / 403 and unauthenticated 401.
- Role-scoped listing, filtering and retrieval.
- Admin status changes, cancellation and payment.
- Assignment, reassignment and bulk assignment.
- Error bodies carry ``detail`` and ``code``.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.deliveries.models import Delivery
from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"

User = get_user_model()


def _detail(order_id: str, action: str = "") -> str:
    return f"{ORDERS_URL}{order_id}/{action + '/' if action else ''}"


@pytest.fixture()
def order_payload(product_a, product_b):
    return {
        "items": [
            {"product_id": str(product_a.id), "quantity": 2},
            {"product_id": str(product_b.id), "quantity": 1},
        ],
        "payment_method": "cash",
        "delivery_address": "12 Park Street, Kolkata",
    }


@pytest.fixture()
def create_order(customer_client, order_payload):
    def _create(client=None, **overrides):
        payload = {**order_payload, **overrides}
        response = (client or customer_client).post(ORDERS_URL, payload, format="json")
        assert response.status_code == 201, response.json()
        return response.json()

    return _create


@pytest.fixture()
def other_client():
    client = APIClient()
    client.force_authenticate(User.objects.create_user("neighbour", password="x12345678"))
    return client


class TestCreate:
    def test_creates_order_for_caller(self, customer_client, customer_user, order_payload):
        response = customer_client.post(ORDERS_URL, order_payload, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "APR000001"
        assert data["customer_id"] == str(customer_user.pk)
        assert data["total_amount"] == "11.00"
        assert data["status"] == OrderStatus.PENDING
        assert data["payment_status"] == "pending"
        assert data["delivery"] is None
        assert len(data["items"]) == 2
        assert {item["price_at_order"] for item in data["items"]} == {"3.00", "5.00"}
        assert [h["new_status"] for h in data["status_history"]] == ["pending"]

    def test_empty_items_rejected(self, customer_client, order_payload):
        response = customer_client.post(
            ORDERS_URL, {**order_payload, "items": []}, format="json"
        )
        assert response.status_code == 400
        assert "items" in response.json()

    def test_zero_quantity_rejected(self, customer_client, order_payload, product_a):
        payload = {
            **order_payload,
            "items": [{"product_id": str(product_a.id), "quantity": 0}],
        }
        response = customer_client.post(ORDERS_URL, payload, format="json")
        assert response.status_code == 400
        assert Order.objects.count() == 0

    def test_duplicate_products_rejected(self, customer_client, order_payload, product_a):
        line = {"product_id": str(product_a.id), "quantity": 1}
        response = customer_client.post(
            ORDERS_URL, {**order_payload, "items": [line, line]}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    def test_unknown_product(self, customer_client, order_payload):
        missing = str(uuid4())
        payload = {**order_payload, "items": [{"product_id": missing, "quantity": 1}]}

        response = customer_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "product_not_found"
        assert response.json()["product_ids"] == [missing]

    def test_unavailable_product(self, customer_client, order_payload, unavailable_product):
        payload = {
            **order_payload,
            "items": [{"product_id": str(unavailable_product.id), "quantity": 1}],
        }
        response = customer_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 400
        assert response.json()["code"] == "product_unavailable"

    def test_customer_cannot_order_for_someone_else(self, customer_client, order_payload):
        response = customer_client.post(
            ORDERS_URL, {**order_payload, "customer_id": "someone-else"}, format="json"
        )
        assert response.status_code == 403
        assert response.json()["code"] == "not_authorized"

    def test_admin_orders_on_behalf(self, admin_client, order_payload):
        response = admin_client.post(
            ORDERS_URL, {**order_payload, "customer_id": "walk-in-7"}, format="json"
        )
        assert response.status_code == 201
        assert response.json()["customer_id"] == "walk-in-7"

    def test_requires_authentication(self, api_client, order_payload):
        response = api_client.post(ORDERS_URL, order_payload, format="json")
        assert response.status_code == 401


class TestRead:
    def test_list_is_scoped_to_customer(
        self, create_order, customer_client, other_client, admin_client
    ):
        mine = create_order()
        create_order(client=other_client)

        response = customer_client.get(ORDERS_URL)

        assert response.status_code == 200
        assert response.json()["count"] == 1
        assert response.json()["results"][0]["id"] == mine["id"]
        assert admin_client.get(ORDERS_URL).json()["count"] == 2

    def test_agent_lists_assigned_orders(
        self, create_order, admin_client, agent_client, agent_user
    ):
        assigned = create_order()
        create_order()
        admin_client.post(
            _detail(assigned["id"], "assign"),
            {"agent_id": str(agent_user.pk)},
            format="json",
        )

        data = agent_client.get(ORDERS_URL).json()

        assert [row["id"] for row in data["results"]] == [assigned["id"]]
        assert data["results"][0]["delivery"]["agent_id"] == str(agent_user.pk)

    def test_filter_by_status(self, create_order, admin_client):
        first = create_order()
        create_order()
        admin_client.post(_detail(first["id"], "cancel"), {}, format="json")

        data = admin_client.get(ORDERS_URL, {"status": "cancelled"}).json()

        assert [row["id"] for row in data["results"]] == [first["id"]]

    def test_newest_first(self, create_order, admin_client):
        first = create_order()
        second = create_order()

        data = admin_client.get(ORDERS_URL).json()

        assert [row["id"] for row in data["results"]] == [second["id"], first["id"]]

    def test_retrieve_own_order(self, create_order, customer_client):
        order = create_order()
        response = customer_client.get(_detail(order["id"]))
        assert response.status_code == 200
        assert response.json()["id"] == order["id"]

    def test_retrieve_foreign_order_forbidden(self, create_order, other_client):
        order = create_order()
        response = other_client.get(_detail(order["id"]))
        assert response.status_code == 403

    def test_retrieve_unknown_order(self, admin_client):
        response = admin_client.get(_detail("APR000404"))
        assert response.status_code == 404
        assert response.json()["code"] == "order_not_found"


class TestStatusChanges:
    def test_admin_moves_to_processing(self, create_order, admin_client):
        order = create_order()

        response = admin_client.patch(
            _detail(order["id"]), {"status": "processing", "notes": "Packing"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status"] == "processing"
        assert response.json()["version"] == 2

    def test_customer_cannot_change_status(self, create_order, customer_client):
        order = create_order()
        response = customer_client.patch(
            _detail(order["id"]), {"status": "processing"}, format="json"
        )
        assert response.status_code == 403

    def test_illegal_transition_is_409(self, create_order, admin_client):
        order = create_order()

        response = admin_client.patch(
            _detail(order["id"]), {"status": "delivered"}, format="json"
        )

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "illegal_transition"
        assert body["from_status"] == "pending"
        assert body["to_status"] == "delivered"

    def test_stale_version_is_409(self, create_order, admin_client):
        order = create_order()
        admin_client.patch(_detail(order["id"]), {"status": "processing"}, format="json")

        response = admin_client.patch(
            _detail(order["id"]),
            {"status": "cancelled", "expected_version": 1},
            format="json",
        )

        assert response.status_code == 409
        assert response.json()["code"] == "conflict"
        assert Order.objects.get(id=order["id"]).status == OrderStatus.PROCESSING

    def test_unknown_status_value(self, create_order, admin_client):
        order = create_order()
        response = admin_client.patch(
            _detail(order["id"]), {"status": "teleported"}, format="json"
        )
        assert response.status_code == 400


class TestCancelAndPay:
    def test_customer_cancels_pending_order(self, create_order, customer_client):
        order = create_order()

        response = customer_client.post(_detail(order["id"], "cancel"), {}, format="json")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        again = customer_client.post(_detail(order["id"], "cancel"), {}, format="json")
        assert again.status_code == 409

    def test_admin_marks_paid(self, create_order, admin_client):
        order = create_order()

        response = admin_client.post(
            _detail(order["id"], "pay"), {"payment_method": "upi"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"
        assert response.json()["payment_method"] == "upi"

    def test_customer_cannot_mark_paid(self, create_order, customer_client):
        order = create_order()
        response = customer_client.post(_detail(order["id"], "pay"), {}, format="json")
        assert response.status_code == 403


class TestAssignment:
    def test_assign_creates_delivery(self, create_order, admin_client):
        order = create_order()

        response = admin_client.post(
            _detail(order["id"], "assign"), {"agent_id": "agent7"}, format="json"
        )

        assert response.status_code == 201
        data = response.json()
        assert data["agent_id"] == "agent7"
        assert data["status"] == "pending"
        assert data["order_id"] == order["id"]
        assert data["total_amount"] == "11.00"
        assert Order.objects.get(id=order["id"]).status == OrderStatus.ASSIGNED

    def test_second_assignment_is_409(self, create_order, admin_client):
        order = create_order()
        admin_client.post(_detail(order["id"], "assign"), {"agent_id": "agent7"}, format="json")

        response = admin_client.post(
            _detail(order["id"], "assign"), {"agent_id": "agent9"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["code"] == "assignment_rejected"
        assert response.json()["order_id"] == order["id"]

    def test_assign_cancelled_order_is_409(self, create_order, admin_client):
        order = create_order()
        admin_client.post(_detail(order["id"], "cancel"), {}, format="json")

        response = admin_client.post(
            _detail(order["id"], "assign"), {"agent_id": "agent7"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["code"] == "illegal_transition"

    def test_customer_cannot_assign(self, create_order, customer_client):
        order = create_order()
        response = customer_client.post(
            _detail(order["id"], "assign"), {"agent_id": "agent7"}, format="json"
        )
        assert response.status_code == 403
        assert Delivery.objects.count() == 0

    def test_reassign(self, create_order, admin_client):
        order = create_order()
        admin_client.post(_detail(order["id"], "assign"), {"agent_id": "agent7"}, format="json")

        response = admin_client.post(
            _detail(order["id"], "reassign"), {"agent_id": "agent9"}, format="json"
        )

        assert response.status_code == 201
        assert response.json()["agent_id"] == "agent9"
        statuses = sorted(
            Delivery.objects.filter(order_id=order["id"]).values_list("status", flat=True)
        )
        assert statuses == ["failed", "pending"]

    def test_bulk_assign_reports_partial_failure(self, create_order, admin_client):
        o1 = create_order()
        o2 = create_order()
        admin_client.post(_detail(o2["id"], "assign"), {"agent_id": "agent7"}, format="json")

        response = admin_client.post(
            f"{ORDERS_URL}assign-bulk/",
            {"order_ids": [o1["id"], o2["id"]], "agent_id": "agent9"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == [o1["id"]]
        assert data["failed"][0]["order_id"] == o2["id"]
        assert data["failed"][0]["error"] == "assignment_rejected"
        assert Delivery.objects.get(order_id=o1["id"]).agent_id == "agent9"

    def test_bulk_assign_requires_order_ids(self, admin_client):
        response = admin_client.post(
            f"{ORDERS_URL}assign-bulk/", {"order_ids": [], "agent_id": "agent9"}, format="json"
        )
        assert response.status_code == 400
