from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.companies.dtos import CreateCompanyDTO
from modules.companies.models import Company
from modules.companies.repositories.django_repository import CompanyDjangoRepository
from modules.companies.services import CompanyService
from modules.orders.conf import get_stage_sequence
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product, ProductCategory
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        companies = self._seed_companies()
        clients = self._seed_clients(companies)
        products = self._seed_products()
        orders_created = self._seed_orders(clients, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"companies={len(companies)}, "
                f"clients={len(clients)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="production").exists():
            User.objects.create_user("production", password="production123", is_staff=True)
            created += 1
        return created

    def _seed_companies(self) -> list[Company]:
        self.stdout.write("Creating companies...")
        service = CompanyService(CompanyDjangoRepository())
        seed = [
            ("Sunrise Textiles Private Limited", "Sunrise Textiles", "27AAPFU0939F1ZV"),
            ("Blue Lotus Apparel", "Blue Lotus", "29ABCDE1234F1Z5"),
            ("Kaveri Corporate Gifting", "Kaveri Gifts", "33AACCK4321M1ZQ"),
        ]
        companies: list[Company] = []
        for name, trade_name, gst_number in seed:
            company = Company.objects.alive().filter(gst_number=gst_number).first()
            if company is None:
                company = service.create_company(
                    CreateCompanyDTO(
                        company_name=name,
                        trade_name=trade_name,
                        gst_number=gst_number,
                        billing_address=f"{trade_name} HQ, India",
                    )
                )
            companies.append(company)
        self.stdout.write(self.style.SUCCESS("Creating companies... Done!"))
        return companies

    def _seed_clients(self, companies: list[Company]) -> list[Client]:
        self.stdout.write("Creating clients...")
        seed = [
            ("Asha Menon", "asha@example.com"),
            ("Rohit Verma", "rohit@example.com"),
            ("Meera Iyer", "meera@example.com"),
            ("Karan Shah", "karan@example.com"),
            ("Divya Rao", "divya@example.com"),
        ]
        clients: list[Client] = []
        for index, (name, email) in enumerate(seed):
            client, _ = Client.objects.get_or_create(
                email=email,
                defaults={
                    "name": name,
                    "phone_number": f"+91 98{index:02d} 000 000",
                    "company": companies[index % len(companies)],
                },
            )
            clients.append(client)
        self.stdout.write(self.style.SUCCESS("Creating clients... Done!"))
        return clients

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        catalog = [
            ("TSH-001", "Cotton Round Neck T-Shirt", ProductCategory.APPAREL, "240.00"),
            ("POL-001", "Pique Polo Shirt", ProductCategory.APPAREL, "420.00"),
            ("HOD-001", "Fleece Hoodie", ProductCategory.APPAREL, "890.00"),
            ("CAP-001", "Embroidered Cap", ProductCategory.ACCESSORIES, "180.00"),
            ("TOT-001", "Canvas Tote Bag", ProductCategory.CORPORATE_GIFTS, "150.00"),
            ("CUS-001", "Cushion Cover", ProductCategory.HOME_TEXTILES, "210.00"),
        ]
        products: list[Product] = []
        for sku, name, category, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "category": category,
                    "base_price": Decimal(price),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self, clients: list[Client], products: list[Product], count: int
    ) -> int:
        self.stdout.write("Creating orders...")
        if Order.objects.exists():
            self.stdout.write(self.style.WARNING("Skipping orders (already seeded)."))
            return 0

        service = OrderService(
            order_repository=OrderDjangoRepository(),
            company_repository=CompanyDjangoRepository(),
            client_repository=ClientDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        stage_names = get_stage_sequence().names
        now = timezone.now()

        for _ in range(count):
            client = random.choice(clients)
            product = random.choice(products)
            quantity = random.choice([50, 100, 250, 500])
            order = service.create_order(
                CreateOrderDTO(
                    company_id=client.company_id,
                    client_id=client.id,
                    product_id=product.id,
                    quantity=quantity,
                    price=product.base_price,
                    amount_paid=random.choice([Decimal("0"), product.base_price * quantity]),
                    order_date=now - timedelta(days=random.randint(5, 40)),
                    expected_delivery=now + timedelta(days=random.randint(-10, 30)),
                    shipping_address=f"Warehouse {random.randint(1, 9)}, Mumbai",
                ),
                performed_by="seed",
            )
            target = random.choice(stage_names)
            service.transition_stage(str(order.id), target, performed_by="seed")

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
