"""Django ORM implementation of the Order repository.

Writes go through ``transaction.atomic()``; domain events raised on the
aggregate are stored in the outbox within the same transaction.
Concurrent stage changes are serialised with ``select_for_update()``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Sum

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderActivity, OrderPayment, OrderStageEntry
from modules.orders.repositories.interfaces import IOrderRepository
from modules.orders.timeline import EntryStatus, TimelineState

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _queryset(self):
        return Order.objects.select_related("company", "client", "product")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with its history, payments and activity prefetched.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                self._queryset()
                .prefetch_related("stage_history", "payments", "activity")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return (
                Order.objects.select_for_update()
                .select_related("company", "client", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
        queryset = self._queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_by_stage(self, labels: Iterable[str]) -> List[Order]:
        return list(self._queryset().filter(current_stage__in=list(labels)))

    def list_for_board(
        self,
        labels: Iterable[str],
        terminal_labels: Iterable[str],
        completed_since: datetime,
    ) -> List[Order]:
        return list(
            self._queryset()
            .filter(current_stage__in=list(labels))
            .exclude(
                current_stage__in=list(terminal_labels),
                completed_at__lt=completed_since,
            )
        )

    def next_order_number(self, company) -> str:
        return Order.next_order_number(company)

    def summary(self) -> Dict[str, Any]:
        # Meta.ordering would split the groups
        by_stage = dict(
            Order.objects.order_by()
            .values_list("current_stage")
            .annotate(count=Count("id"))
        )
        by_payment_status = dict(
            Order.objects.order_by()
            .values_list("payment_status")
            .annotate(count=Count("id"))
        )
        totals = Order.objects.aggregate(
            total_orders=Count("id"), total_revenue=Sum("price_with_gst")
        )
        return {
            "by_stage": by_stage,
            "by_payment_status": by_payment_status,
            "total_orders": totals["total_orders"],
            "total_revenue": totals["total_revenue"] or Decimal("0.00"),
        }

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and move its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order; its history, payments and activity cascade."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.deleted", order_id=str(id))
        return True

    @transaction.atomic
    def start_timeline(self, order: Order, state: TimelineState) -> Order:
        OrderStageEntry.objects.bulk_create(
            [
                OrderStageEntry(
                    order=order,
                    stage_name=entry.stage_name,
                    entered_at=entry.entered_at,
                    exited_at=entry.exited_at,
                    status=entry.status.value,
                )
                for entry in state.history
            ]
        )
        order.current_stage = state.current_stage or ""
        order.completed_at = state.completed_at
        return self.save(order)

    @transaction.atomic
    def commit_timeline(
        self, order: Order, state: TimelineState, notes: str = ""
    ) -> Order:
        """Apply the outcome of a stage transition.

        Every stored open entry is closed at the new entry's ``entered_at``;
        the last entry of *state* is appended as the new active one.
        """
        new_entry = state.history[-1]
        closed = OrderStageEntry.objects.filter(
            order=order, status=EntryStatus.ACTIVE.value
        ).update(
            status=EntryStatus.COMPLETED.value,
            exited_at=new_entry.entered_at,
        )
        OrderStageEntry.objects.create(
            order=order,
            stage_name=new_entry.stage_name,
            entered_at=new_entry.entered_at,
            status=new_entry.status.value,
            notes=notes,
        )
        order.current_stage = state.current_stage or ""
        order.completed_at = state.completed_at
        logger.debug(
            "order.timeline_committed",
            order_id=str(order.id),
            closed_entries=closed,
            stage=order.current_stage,
        )
        return self.save(order)

    @transaction.atomic
    def add_activity(
        self,
        order: Order,
        action: str,
        details: str,
        timestamp: datetime,
        performed_by: str = "",
    ) -> OrderActivity:
        return OrderActivity.objects.create(
            order=order,
            action=action,
            details=details,
            timestamp=timestamp,
            performed_by=performed_by,
        )

    # ------------------------------------------------------------------
    # Payments ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_payment(self, order: Order, data: Dict[str, Any]) -> OrderPayment:
        payment = OrderPayment(order=order, **data)
        payment.full_clean(exclude=["order"])
        payment.save()
        return payment

    def get_payment(self, order: Order, payment_id: str) -> Optional[OrderPayment]:
        try:
            return OrderPayment.objects.filter(order=order, id=payment_id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def save_payment(self, payment: OrderPayment) -> OrderPayment:
        payment.full_clean(exclude=["order"])
        payment.save()
        return payment

    @transaction.atomic
    def delete_payment(self, payment: OrderPayment) -> None:
        payment.delete()

    def payments_total(self, order: Order) -> Decimal:
        total = OrderPayment.objects.filter(order=order).aggregate(total=Sum("amount"))
        return total["total"] or Decimal("0.00")
