"""Order, stage history, payments ledger and activity log.

- ``current_stage`` holds a canonical stage name; ``""`` means unset.
- ``OrderStageEntry`` rows are append-only; only an entry's status and
  ``exited_at`` change when the order leaves the stage.
- Order number is ``CC/ON/<company short code>/<NN>`` where ``NN`` is one
  past the company's highest ``sequence_number``, assigned on first save.
  Numbers of deleted orders below the highest are never handed out again.
- ``amount_paid`` is the sum of the payments ledger.
- Orders are hard-deleted; history, payments and activity cascade.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import IntegrityError, models, transaction
from django.db.models import Max

from modules.core.models import BaseModel
from modules.orders.constants import (
    DEFAULT_ADVANCE_PERCENTAGE,
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    ActivityAction,
    PaymentStatus,
    PaymentType,
)
from modules.orders.timeline import EntryStatus, StageEntry, TimelineState
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


def format_order_number(short_code: str, sequence_number: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}/{short_code}/{sequence_number:02d}"


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root."""

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    sequence_number = models.PositiveIntegerField(default=0, editable=False)
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    order_date = models.DateTimeField()
    expected_delivery = models.DateTimeField(null=True, blank=True)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    price = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    custom_charges = models.JSONField(default=list, blank=True)
    price_after_discount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    price_with_gst = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )

    advance_percentage = models.PositiveSmallIntegerField(
        default=DEFAULT_ADVANCE_PERCENTAGE,
        validators=[MaxValueValidator(100)],
    )
    amount_paid = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    payment_status = models.CharField(
        max_length=32,
        choices=PaymentStatus.choices,
        default=PaymentStatus.BALANCE_REMAINING,
    )

    shipping_address = models.TextField()
    current_stage = models.CharField(max_length=64, blank=True, default="")
    completed_at = models.DateTimeField(null=True, blank=True, default=None)
    notes = models.TextField(blank=True, default="")
    internal_notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-order_date"]
        indexes = [
            models.Index(fields=["current_stage"], name="orders_stage_idx"),
            models.Index(fields=["company", "client"], name="orders_company_client_idx"),
            models.Index(fields=["-order_date"], name="orders_date_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
        ]

    # ------------------------------------------------------------------
    # Order number
    # ------------------------------------------------------------------

    @classmethod
    def next_sequence_number(cls, company) -> int:
        highest = cls.objects.filter(company=company).aggregate(
            highest=Max("sequence_number")
        )["highest"]
        return (highest or 0) + 1

    @classmethod
    def next_order_number(cls, company) -> str:
        return format_order_number(company.short_code, cls.next_sequence_number(company))

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.order_number:
            super().save(*args, **kwargs)
            return

        # retried only when a concurrent writer took the same number
        for attempt in range(ORDER_NUMBER_MAX_RETRIES):
            self.sequence_number = self.next_sequence_number(self.company)
            self.order_number = format_order_number(
                self.company.short_code, self.sequence_number
            )
            try:
                with transaction.atomic():
                    super().save(*args, **kwargs)
                return
            except IntegrityError:
                if not Order.objects.filter(order_number=self.order_number).exists():
                    raise
                logger.warning(
                    "order.number_collision",
                    order_number=self.order_number,
                    attempt=attempt + 1,
                )
                self.order_number = ""
        raise RuntimeError(
            f"Failed to generate unique order_number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def timeline_state(self) -> TimelineState:
        """Snapshot for the timeline engine, history in entry order."""
        history = tuple(
            StageEntry(
                stage_name=entry.stage_name,
                entered_at=entry.entered_at,
                status=EntryStatus(entry.status),
                exited_at=entry.exited_at,
            )
            for entry in self.stage_history.order_by("entered_at", "created_at")
        )
        return TimelineState(
            current_stage=self.current_stage or None,
            history=history,
            completed_at=self.completed_at,
        )

    def __str__(self) -> str:
        return f"{self.order_number} ({self.current_stage or 'unset'})"


class OrderStageEntry(BaseModel):
    """One visit of an order to a stage."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="stage_history",
    )
    stage_name = models.CharField(max_length=64)
    entered_at = models.DateTimeField()
    exited_at = models.DateTimeField(null=True, blank=True, default=None)
    status = models.CharField(
        max_length=16,
        choices=[(s.value, s.value.title()) for s in EntryStatus],
        default=EntryStatus.ACTIVE.value,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_stage_entries"
        ordering = ["entered_at", "created_at"]
        indexes = [
            models.Index(fields=["order", "entered_at"], name="ose_order_entered_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.stage_name} [{self.status}]"


class OrderPayment(BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    paid_on = models.DateTimeField()
    payment_type = models.CharField(
        max_length=16,
        choices=PaymentType.choices,
        default=PaymentType.INSTALLMENT,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_payments"
        ordering = ["paid_on", "created_at"]

    def __str__(self) -> str:
        return f"{self.payment_type} {self.amount} ({self.order_id})"


class OrderActivity(BaseModel):
    """Append-only audit trail of what happened to an order."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="activity",
    )
    action = models.CharField(max_length=32, choices=ActivityAction.choices)
    details = models.TextField(blank=True, default="")
    performed_by = models.CharField(max_length=150, blank=True, default="")
    timestamp = models.DateTimeField()

    class Meta:
        db_table = "order_activity"
        ordering = ["-timestamp", "-created_at"]

    def __str__(self) -> str:
        return f"{self.action}: {self.details}"
