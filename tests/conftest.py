from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.companies.models import Company
from modules.companies.repositories.django_repository import CompanyDjangoRepository
from modules.orders.dtos import CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

FIXED_NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def auth_client(api_client):
    user = get_user_model().objects.create_user(username="production", password="pw")
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def company():
    return Company.objects.create(
        company_name="Sunrise Textiles Private Limited",
        trade_name="Sunrise Textiles",
        gst_number="27AAPFU0939F1ZV",
        billing_address="Plot 12, MIDC, Pune",
        short_code="STP",
    )


@pytest.fixture()
def client_account(company):
    return Client.objects.create(
        name="Asha Menon",
        email="asha@example.com",
        phone_number="+91 98000 00000",
        company=company,
    )


@pytest.fixture()
def product():
    return Product.objects.create(
        name="Cotton Round Neck T-Shirt",
        sku="TSH-001",
        base_price=Decimal("240.00"),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class Clock:
    """Settable clock for services under test."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def order_service(clock):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        company_repository=CompanyDjangoRepository(),
        client_repository=ClientDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        clock=clock,
    )


@pytest.fixture()
def make_order(order_service, company, client_account, product):
    def _make(**overrides):
        data = {
            "company_id": company.id,
            "client_id": client_account.id,
            "product_id": product.id,
            "quantity": 100,
            "price": Decimal("240.00"),
            "expected_delivery": FIXED_NOW + timedelta(days=14),
            "shipping_address": "Warehouse 4, Bhiwandi",
        }
        data.update(overrides)
        return order_service.create_order(CreateOrderDTO(**data))

    return _make
