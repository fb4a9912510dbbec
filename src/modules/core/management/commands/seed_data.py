from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from modules.core.principal import DELIVERY_AGENT_GROUP, Principal, Role
from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.services import DeliveryAssigner, DeliveryService
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import OrderDraft
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

CATALOG = [
    ("Bananas (1 dozen)", "Fruits", Decimal("3.00"), 120),
    ("Apples (1 kg)", "Fruits", Decimal("4.50"), 80),
    ("Tomatoes (1 kg)", "Vegetables", Decimal("2.20"), 60),
    ("Onions (1 kg)", "Vegetables", Decimal("1.80"), 0),
    ("Whole milk (1 L)", "Dairy", Decimal("1.25"), 40),
    ("Paneer (200 g)", "Dairy", Decimal("2.75"), 25),
    ("Basmati rice (5 kg)", "Staples", Decimal("9.90"), None),
    ("Whole wheat atta (5 kg)", "Staples", Decimal("5.00"), None),
    ("Toor dal (1 kg)", "Staples", Decimal("2.60"), 35),
    ("Green tea (25 bags)", "Beverages", Decimal("3.40"), None),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin, customers, agents = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(
            admin, customers, agents, products, options["orders"]
        )

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"customers={len(customers)}, "
                f"agents={len(agents)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> tuple[Principal, list[Principal], list[Principal]]:
        User = get_user_model()
        group, _ = Group.objects.get_or_create(name=DELIVERY_AGENT_GROUP)

        admin = User.objects.filter(username="admin").first()
        if admin is None:
            admin = User.objects.create_superuser("admin", password="admin123")

        customers: list[Principal] = []
        for username in ("asha", "ravi", "meera"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
            customers.append(Principal(id=str(user.pk), role=Role.CUSTOMER))

        agents: list[Principal] = []
        for username in ("agent7", "agent9"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
            user.groups.add(group)
            agents.append(Principal(id=str(user.pk), role=Role.DELIVERY_AGENT))

        self.stdout.write(self.style.SUCCESS("Creating users... Done!"))
        return Principal(id=str(admin.pk), role=Role.ADMIN), customers, agents

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for name, category, price, stock in CATALOG:
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "category": category,
                    "price": price,
                    "stock_quantity": stock,
                    "track_inventory": stock is not None,
                    "is_available": stock != 0,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self,
        admin: Principal,
        customers: list[Principal],
        agents: list[Principal],
        products: list[Product],
        count: int,
    ) -> int:
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        self.stdout.write("Creating orders...")
        order_repo = OrderDjangoRepository()
        delivery_repo = DeliveryDjangoRepository()
        order_service = OrderService(
            order_repository=order_repo,
            product_repository=ProductDjangoRepository(),
            delivery_repository=delivery_repo,
        )
        assigner = DeliveryAssigner(order_repo, delivery_repo, order_service)
        deliveries = DeliveryService(delivery_repo, order_repo, order_service)

        available = [p for p in products if p.is_available]
        for i in range(count):
            customer = random.choice(customers)
            draft = OrderDraft()
            for product in random.sample(available, k=random.randint(1, 4)):
                draft = draft.add(product.id, random.randint(1, 3))
            order = order_service.create_order(
                customer,
                draft.to_create_dto(
                    customer_id=customer.id,
                    payment_method=random.choice(
                        [PaymentMethod.CASH, PaymentMethod.UPI]
                    ),
                    delivery_address=f"{i + 1} MG Road, Bengaluru",
                ),
            )

            outcome = random.choice(["pending", "assigned", "delivered", "cancelled"])
            if outcome == "cancelled":
                order_service.cancel_order(admin, order.id, notes="Seed cancellation")
                continue
            if outcome == "pending":
                continue

            agent = random.choice(agents)
            delivery = assigner.assign_one(admin, order.id, agent.id)
            if outcome == "delivered":
                deliveries.update_status(
                    agent, str(delivery.id), DeliveryStatus.IN_PROGRESS
                )
                deliveries.update_status(
                    agent,
                    str(delivery.id),
                    DeliveryStatus.DELIVERED,
                    payment_collected=random.random() < 0.8,
                )

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
