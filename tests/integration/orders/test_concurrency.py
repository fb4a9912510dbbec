"""Order concurrency integration test.

Proves that row locks in ``OrderService.create_order`` and
``DeliveryAssigner.assign_one`` serialize concurrent writers.

Scenarios:
- 10 threads place an order each: 10 distinct ids, every order has items.
- 10 threads assign the same order: exactly one delivery is created and
  every other thread gets ``AssignmentError`` or ``ConflictError``.

Uses ``TransactionTestCase`` so each thread sees committed data. Skipped on
backends without ``SELECT ... FOR UPDATE`` (SQLite).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

import django
from django.test import TransactionTestCase, skipUnlessDBFeature

from modules.core.principal import Principal, Role
from modules.deliveries.exceptions import AssignmentError
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.services import DeliveryAssigner
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.identifiers import OrderIdGenerator
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.domain.exceptions import ConflictError

logger = logging.getLogger(__name__)

NUM_WORKERS = 10
ADMIN = Principal(id="admin-1", role=Role.ADMIN)
CUSTOMER = Principal(id="customer-1", role=Role.CUSTOMER)


def _order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        delivery_repository=DeliveryDjangoRepository(),
        # every racer may lose to all the others once
        id_generator=OrderIdGenerator(max_retries=NUM_WORKERS),
    )


@skipUnlessDBFeature("has_select_for_update")
class TestOrderConcurrency(TransactionTestCase):
    """Concurrent writers never share an id or double-assign an order."""

    def setUp(self):
        self.product = Product.objects.create(name="Basmati rice", price=Decimal("4.50"))

    def tearDown(self):
        django.db.connections.close_all()

    def _dto(self, thread_id: int) -> CreateOrderDTO:
        return CreateOrderDTO(
            customer_id=CUSTOMER.id,
            items=[CreateOrderItemDTO(product_id=self.product.id, quantity=1)],
            delivery_address=f"{thread_id} Park Street",
            notes=f"Concurrency thread {thread_id}",
        )

    def _run(self, fn) -> list:
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(fn, i) for i in range(NUM_WORKERS)]
            return [future.result() for future in as_completed(futures)]

    def _create_order_in_thread(self, thread_id: int) -> str:
        try:
            order = _order_service().create_order(CUSTOMER, self._dto(thread_id))
            logger.warning("Thread %d: created %s", thread_id, order.id)
            return order.id
        finally:
            django.db.connections.close_all()

    def _assign_in_thread(self, order_id: str, thread_id: int) -> str:
        service = _order_service()
        assigner = DeliveryAssigner(
            order_repository=OrderDjangoRepository(),
            delivery_repository=DeliveryDjangoRepository(),
            order_service=service,
        )
        try:
            assigner.assign_one(ADMIN, order_id, f"agent{thread_id}")
            return "assigned"
        except AssignmentError:
            return "already_assigned"
        except ConflictError:
            return "conflict"
        finally:
            django.db.connections.close_all()

    def test_concurrent_orders_get_distinct_ids(self):
        ids = self._run(self._create_order_in_thread)

        self.assertEqual(len(set(ids)), NUM_WORKERS, f"Duplicate ids issued: {ids}")
        self.assertEqual(Order.objects.count(), NUM_WORKERS)
        for order in Order.objects.prefetch_related("items"):
            self.assertEqual(
                order.items.count(), 1, f"Order {order.id} was stored without items"
            )
            self.assertEqual(order.total_amount, Decimal("4.50"))

    def test_concurrent_assignment_creates_one_delivery(self):
        order = _order_service().create_order(CUSTOMER, self._dto(0))

        results = self._run(lambda i: self._assign_in_thread(order.id, i))

        self.assertEqual(
            results.count("assigned"), 1, f"Expected one winner, got {results}"
        )
        self.assertEqual(
            results.count("already_assigned") + results.count("conflict"),
            NUM_WORKERS - 1,
        )
        self.assertEqual(Delivery.objects.filter(order_id=order.id).count(), 1)

        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.ASSIGNED)
        self.assertEqual(order.version, 2)
