from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from modules.core.principal import DELIVERY_AGENT_GROUP, Principal, Role
from modules.deliveries.reconciliation import PaymentReconciler
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.services import DeliveryAssigner, DeliveryService
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin():
    return Principal(id="admin-1", role=Role.ADMIN)


@pytest.fixture()
def customer():
    return Principal(id="customer-1", role=Role.CUSTOMER)


@pytest.fixture()
def other_customer():
    return Principal(id="customer-2", role=Role.CUSTOMER)


@pytest.fixture()
def agent7():
    return Principal(id="agent7", role=Role.DELIVERY_AGENT)


@pytest.fixture()
def agent9():
    return Principal(id="agent9", role=Role.DELIVERY_AGENT)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def product_a():
    return Product.objects.create(name="Product A", price=Decimal("3.00"))


@pytest.fixture()
def product_b():
    return Product.objects.create(name="Product B", price=Decimal("5.00"))


@pytest.fixture()
def unavailable_product():
    return Product.objects.create(
        name="Seasonal mangoes", price=Decimal("7.00"), is_available=False
    )


# ---------------------------------------------------------------------------
# Services wired to the Django repositories
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_repo():
    return OrderDjangoRepository()


@pytest.fixture()
def delivery_repo():
    return DeliveryDjangoRepository()


@pytest.fixture()
def order_service(order_repo, delivery_repo):
    return OrderService(
        order_repository=order_repo,
        product_repository=ProductDjangoRepository(),
        delivery_repository=delivery_repo,
    )


@pytest.fixture()
def assigner(order_repo, delivery_repo, order_service):
    return DeliveryAssigner(
        order_repository=order_repo,
        delivery_repository=delivery_repo,
        order_service=order_service,
    )


@pytest.fixture()
def delivery_service(order_repo, delivery_repo, order_service):
    return DeliveryService(
        delivery_repository=delivery_repo,
        order_repository=order_repo,
        order_service=order_service,
    )


@pytest.fixture()
def reconciler(order_repo):
    return PaymentReconciler(order_repo)


@pytest.fixture()
def place_order(order_service, customer, product_a, product_b):
    """Factory: create an order (2 x A + 1 x B = $11.00 by default)."""

    def _place(
        principal=None,
        lines=None,
        payment_method=PaymentMethod.CASH,
    ):
        principal = principal or customer
        lines = lines or [(product_a, 2), (product_b, 1)]
        dto = CreateOrderDTO(
            customer_id=principal.id,
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            payment_method=payment_method,
            delivery_address="12 Park Street, Kolkata",
        )
        return order_service.create_order(principal, dto)

    return _place


# ---------------------------------------------------------------------------
# Django users for the HTTP API
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin_user():
    User = get_user_model()
    return User.objects.create_user("ops-admin", password="pass12345", is_staff=True)


@pytest.fixture()
def customer_user():
    User = get_user_model()
    return User.objects.create_user("shopper", password="pass12345")


@pytest.fixture()
def agent_user():
    User = get_user_model()
    user = User.objects.create_user("rider", password="pass12345")
    group, _ = Group.objects.get_or_create(name=DELIVERY_AGENT_GROUP)
    user.groups.add(group)
    return user


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def agent_client(agent_user):
    client = APIClient()
    client.force_authenticate(user=agent_user)
    return client
