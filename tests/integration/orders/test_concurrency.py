"""Concurrent stage transition integration test.

Proves that ``SELECT FOR UPDATE`` in ``OrderService.transition_stage``
serialises two drags of the same card.

Scenario:
- One order at "Order Confirmed".
- Two threads move it at the same moment, one to "Stitching", one to
  "Packing".
- The later commit wins and sees the earlier one's history: exactly one
  active entry, entries in monotonic order, the order's stage is the
  last entry's stage.

Uses ``TransactionTestCase`` so each thread sees committed data.  Needs
a backend with row locks (PostgreSQL, MySQL); run with ``DATABASE_URL``
pointing at one.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.db import connections
from django.test import TransactionTestCase, skipUnlessDBFeature

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.companies.models import Company
from modules.companies.repositories.django_repository import CompanyDjangoRepository
from modules.orders.dtos import CreateOrderDTO
from modules.orders.models import Order, OrderStageEntry
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

logger = logging.getLogger(__name__)

NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)
TARGETS = ("Stitching", "Packing")


def _service(now: datetime) -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        company_repository=CompanyDjangoRepository(),
        client_repository=ClientDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        clock=lambda: now,
    )


@skipUnlessDBFeature("has_select_for_update")
class TestConcurrentTransitions(TransactionTestCase):
    """Two writers moving one order."""

    def setUp(self):
        company = Company.objects.create(
            company_name="Sunrise Textiles Private Limited",
            trade_name="Sunrise Textiles",
            gst_number="27AAPFU0939F1ZV",
            billing_address="Plot 12, MIDC, Pune",
            short_code="STP",
        )
        client = Client.objects.create(
            name="Asha Menon", email="asha@example.com", company=company
        )
        product = Product.objects.create(
            name="Cotton Round Neck T-Shirt", base_price=Decimal("240.00")
        )
        self.order = _service(NOW).create_order(
            CreateOrderDTO(
                company_id=company.id,
                client_id=client.id,
                product_id=product.id,
                quantity=100,
                price=Decimal("240.00"),
                expected_delivery=NOW + timedelta(days=14),
                shipping_address="Warehouse 4, Bhiwandi",
            )
        )
        self.barrier = threading.Barrier(len(TARGETS))

    def _move_in_thread(self, index: int) -> bool:
        """Each thread gets its own DB connection and its own clock."""
        try:
            service = _service(NOW + timedelta(minutes=index + 1))
            self.barrier.wait(timeout=10)
            result = service.transition_stage(str(self.order.id), TARGETS[index])
            logger.warning("Thread %d: moved to %s", index, TARGETS[index])
            return result.changed
        finally:
            connections.close_all()

    def test_later_commit_wins_with_one_active_entry(self):
        with ThreadPoolExecutor(max_workers=len(TARGETS)) as pool:
            changed = list(pool.map(self._move_in_thread, range(len(TARGETS))))

        self.assertEqual(changed, [True, True])

        self.order.refresh_from_db()
        history = list(
            OrderStageEntry.objects.filter(order=self.order).order_by("created_at")
        )
        self.assertEqual(len(history), 3)
        self.assertEqual(history[0].stage_name, "Order Confirmed")
        self.assertEqual(
            [e.status for e in history], ["completed", "completed", "active"]
        )

        # Invariant: the last commit is the order's stage
        self.assertEqual(self.order.current_stage, history[-1].stage_name)
        self.assertCountEqual(
            [e.stage_name for e in history[1:]], list(TARGETS)
        )

        # Invariant: entries never go back in time
        entered = [e.entered_at for e in history]
        self.assertEqual(entered, sorted(entered))
        self.assertEqual(history[1].exited_at, history[2].entered_at)

    def test_order_row_is_not_duplicated(self):
        with ThreadPoolExecutor(max_workers=len(TARGETS)) as pool:
            list(pool.map(self._move_in_thread, range(len(TARGETS))))

        self.assertEqual(Order.objects.count(), 1)
        self.assertEqual(
            OrderStageEntry.objects.filter(order=self.order, status="active").count(),
            1,
        )
