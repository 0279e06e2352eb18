"""Order service layer (Use Cases).

Orchestrates order creation, detail edits, stage transitions, the Kanban
board and the payments ledger.  Write operations are atomic; the service
defines the unit-of-work boundary.

- Stage changes go through the timeline engine and are committed on a
  row-locked order, so concurrent moves of the same order serialise.
- Each applied transition records history, an activity entry and an
  ``OrderStageChanged`` event in the outbox; a no-op records nothing.
- Prices are recomputed whenever a pricing field changes; the payment
  status follows the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.orders import conf
from modules.orders.constants import ActivityAction, PaymentStatus, PaymentType
from modules.orders.events import OrderCreated, OrderStageChanged, PaymentRecorded
from modules.orders.exceptions import (
    ClientNotFound,
    CompanyNotFound,
    OrderNotFound,
    PaymentNotFound,
    ProductNotFound,
    UnknownStage,
)
from modules.orders.models import Order
from modules.orders.pricing import calculate_totals, derive_payment_status
from modules.orders.timeline import (
    StageSequence,
    apply_transition,
    build_board,
    start_timeline,
)

if TYPE_CHECKING:
    from modules.clients.repositories.interfaces import IClientRepository
    from modules.companies.repositories.interfaces import ICompanyRepository
    from modules.orders.dtos import (
        CreateOrderDTO,
        PaymentDTO,
        UpdateOrderDTO,
        UpdatePaymentDTO,
    )
    from modules.orders.models import OrderPayment
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

PRICING_FIELDS = ("quantity", "price", "discount", "custom_charges")


@dataclass(frozen=True)
class StageTransition:
    order: Order
    changed: bool
    from_stage: Optional[str]
    to_stage: str


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection.  ``clock`` and
    ``stage_sequence`` default to the wall clock and the configured
    pipeline.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        company_repository: ICompanyRepository,
        client_repository: IClientRepository,
        product_repository: IProductRepository,
        clock: Callable[[], datetime] = timezone.now,
        stage_sequence: Optional[StageSequence] = None,
    ) -> None:
        self._order_repo = order_repository
        self._company_repo = company_repository
        self._client_repo = client_repository
        self._product_repo = product_repository
        self._clock = clock
        self._stage_sequence = stage_sequence

    @property
    def sequence(self) -> StageSequence:
        return self._stage_sequence or conf.get_stage_sequence()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, performed_by: str = "") -> Order:
        """Create an order at the first stage of the pipeline.

        Raises:
            CompanyNotFound: company does not exist.
            ClientNotFound: client does not exist.
            ProductNotFound: product does not exist.
        """
        log = logger.bind(company_id=str(dto.company_id), client_id=str(dto.client_id))

        company = self._company_repo.get_by_id(str(dto.company_id))
        if not company:
            raise CompanyNotFound(f"Company {dto.company_id} not found.")
        client = self._client_repo.get_by_id(str(dto.client_id))
        if not client:
            raise ClientNotFound(f"Client {dto.client_id} not found.")
        product = self._product_repo.get_by_id(str(dto.product_id))
        if not product:
            raise ProductNotFound(f"Product {dto.product_id} not found.")

        now = self._clock()
        charges = [charge.model_dump(mode="json") for charge in dto.custom_charges]
        totals = calculate_totals(dto.price, dto.quantity, dto.discount, charges)

        order = Order(
            company=company,
            client=client,
            product=product,
            order_date=dto.order_date or now,
            expected_delivery=dto.expected_delivery,
            quantity=dto.quantity,
            price=dto.price,
            discount=dto.discount,
            custom_charges=charges,
            price_after_discount=totals.taxable_value,
            price_with_gst=totals.total,
            advance_percentage=dto.advance_percentage,
            payment_status=derive_payment_status(
                totals.total, Decimal("0.00"), dto.advance_percentage
            ),
            shipping_address=dto.shipping_address,
            notes=dto.notes,
            internal_notes=dto.internal_notes,
        )
        order = self._order_repo.save(order)

        state = start_timeline(self.sequence, now)
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_number=order.order_number,
                stage=state.current_stage or "",
            )
        )
        order = self._order_repo.start_timeline(order, state)

        self._order_repo.add_activity(
            order,
            ActivityAction.ORDER_CREATED,
            f"Order {order.order_number} created",
            now,
            performed_by,
        )
        if dto.amount_paid > 0:
            self._record_payment(
                order,
                {
                    "amount": dto.amount_paid,
                    "paid_on": now,
                    "payment_type": PaymentType.ADVANCE,
                    "notes": "Initial payment",
                },
                performed_by,
            )

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            stage=order.current_stage,
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def update_order(
        self, order_id: str, dto: UpdateOrderDTO, performed_by: str = ""
    ) -> Order:
        """Edit order details; every changed tracked field is logged.

        The stage is not editable here; use ``transition_stage``.

        Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        now = self._clock()
        changes = dto.model_dump(exclude_none=True, mode="python")
        if "custom_charges" in changes:
            changes["custom_charges"] = [
                charge.model_dump(mode="json") for charge in dto.custom_charges
            ]

        details = _describe_changes(order, changes)
        for field, value in changes.items():
            setattr(order, field, value)

        if any(field in changes for field in PRICING_FIELDS):
            totals = calculate_totals(
                order.price,
                order.quantity,
                order.discount,
                order.custom_charges,
            )
            order.price_after_discount = totals.taxable_value
            order.price_with_gst = totals.total
        order.payment_status = self._payment_status(order)

        order = self._order_repo.save(order)
        for detail in details:
            self._order_repo.add_activity(
                order, ActivityAction.ORDER_UPDATED, detail, now, performed_by
            )

        logger.info(
            "order.updated",
            order_id=str(order.id),
            fields=sorted(changes),
            change_count=len(details),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def transition_stage(
        self,
        order_id: str,
        new_stage: str,
        notes: str = "",
        performed_by: str = "",
    ) -> StageTransition:
        """Move an order to *new_stage* (canonical name or alias).

        Any stage may be targeted, forwards or backwards.  Targeting the
        current stage changes nothing and records nothing.

        Raises:
            OrderNotFound: order does not exist.
            UnknownStage: *new_stage* matches no stage; the order is untouched.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            order_number=order.order_number,
            current_stage=order.current_stage,
            requested_stage=new_stage,
        )

        now = self._clock()
        try:
            result = apply_transition(
                self.sequence, order.timeline_state(), new_stage, now
            )
        except UnknownStage:
            log.warning("order.transition_rejected")
            raise

        if not result.changed:
            log.info("order.transition_noop")
            return StageTransition(order, False, result.from_stage, result.to_stage)

        order.add_domain_event(
            OrderStageChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                from_stage=result.from_stage or "",
                to_stage=result.to_stage,
            )
        )
        order = self._order_repo.commit_timeline(order, result.state, notes)
        self._order_repo.add_activity(
            order,
            ActivityAction.STATUS_UPDATED,
            f"Status updated: {result.to_stage}",
            now,
            performed_by,
        )

        log.info(
            "order.stage_changed",
            from_stage=result.from_stage,
            to_stage=result.to_stage,
            completed=order.completed_at is not None,
        )
        order = self._order_repo.get_by_id(str(order.id)) or order
        return StageTransition(order, True, result.from_stage, result.to_stage)

    @transaction.atomic
    def delete_order(self, order_id: str) -> None:
        """Raises:
            OrderNotFound: order does not exist.
        """
        if not self._order_repo.delete(order_id):
            raise OrderNotFound(f"Order {order_id} not found.")

    # ------------------------------------------------------------------
    # Payments ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_payment(
        self, order_id: str, dto: PaymentDTO, performed_by: str = ""
    ) -> Order:
        """Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        self._record_payment(
            order,
            {
                "amount": dto.amount,
                "paid_on": dto.paid_on or self._clock(),
                "payment_type": dto.payment_type,
                "notes": dto.notes,
            },
            performed_by,
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def update_payment(
        self,
        order_id: str,
        payment_id: str,
        dto: UpdatePaymentDTO,
        performed_by: str = "",
    ) -> Order:
        """Raises:
            OrderNotFound: order does not exist.
            PaymentNotFound: payment is not on this order.
        """
        order, payment = self._locked_payment(order_id, payment_id)

        for field, value in dto.model_dump(exclude_none=True).items():
            setattr(payment, field, value)
        self._order_repo.save_payment(payment)

        self._refresh_amount_paid(order)
        self._order_repo.add_activity(
            order,
            ActivityAction.PAYMENT_UPDATED,
            f"Payment of {payment.amount} updated",
            self._clock(),
            performed_by,
        )
        logger.info(
            "order.payment_updated",
            order_id=str(order.id),
            payment_id=str(payment.id),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def delete_payment(
        self, order_id: str, payment_id: str, performed_by: str = ""
    ) -> Order:
        """Raises:
            OrderNotFound: order does not exist.
            PaymentNotFound: payment is not on this order.
        """
        order, payment = self._locked_payment(order_id, payment_id)
        amount = payment.amount
        self._order_repo.delete_payment(payment)

        self._refresh_amount_paid(order)
        self._order_repo.add_activity(
            order,
            ActivityAction.PAYMENT_DELETED,
            f"Payment of {amount} deleted",
            self._clock(),
            performed_by,
        )
        logger.info(
            "order.payment_deleted",
            order_id=str(order.id),
            payment_id=str(payment_id),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises:
            OrderNotFound: order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders_in_stage(self, stage_name: str) -> List[Order]:
        """Orders stored under *stage_name* or any of its aliases.

        Raises:
            UnknownStage: *stage_name* matches no stage.
        """
        ordinal = self.sequence.resolve(stage_name)
        if ordinal is None:
            raise UnknownStage(stage_name)
        return self._order_repo.list_by_stage(self.sequence[ordinal].labels)

    def board(self, now: Optional[datetime] = None) -> Dict[str, List[Order]]:
        """Kanban columns in pipeline order, completed orders past retention hidden."""
        sequence = self.sequence
        now = now or self._clock()
        retention = conf.get_retention_window()
        labels = [label for stage in sequence for label in stage.labels]
        orders = self._order_repo.list_for_board(
            labels, sequence.terminal.labels, now - retention
        )
        return build_board(sequence, orders, now, retention)

    def stats(self) -> Dict[str, Any]:
        """Dashboard figures.

        Stage counts are keyed by canonical name in pipeline order, rows
        stored under an alias count towards their stage.  Orders whose
        stage is unset or unknown only show up in ``total_orders``.
        """
        sequence = self.sequence
        summary = self._order_repo.summary()

        by_stage = {name: 0 for name in sequence.names}
        for label, count in summary["by_stage"].items():
            ordinal = sequence.resolve(label)
            if ordinal is not None:
                by_stage[sequence[ordinal].name] += count

        by_payment_status = {
            status.value: summary["by_payment_status"].get(status.value, 0)
            for status in PaymentStatus
        }
        completed = by_payment_status[PaymentStatus.PAYMENT_COMPLETED.value]
        return {
            "total_orders": summary["total_orders"],
            "completed_payments": completed,
            "pending_payments": summary["total_orders"] - completed,
            "total_revenue": summary["total_revenue"],
            "by_stage": by_stage,
            "by_payment_status": by_payment_status,
        }

    def next_order_number(self, company_id: str) -> str:
        """Raises:
            CompanyNotFound: company does not exist.
        """
        company = self._company_repo.get_by_id(company_id)
        if not company:
            raise CompanyNotFound(f"Company {company_id} not found.")
        return self._order_repo.next_order_number(company)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _locked_payment(
        self, order_id: str, payment_id: str
    ) -> tuple[Order, OrderPayment]:
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        payment = self._order_repo.get_payment(order, payment_id)
        if not payment:
            raise PaymentNotFound(f"Payment {payment_id} not found on order {order_id}.")
        return order, payment

    def _record_payment(
        self, order: Order, data: Dict[str, Any], performed_by: str
    ) -> OrderPayment:
        payment = self._order_repo.add_payment(order, data)
        order.add_domain_event(
            PaymentRecorded(
                aggregate_id=order.id,
                order_number=order.order_number,
                amount=str(payment.amount),
                payment_type=str(payment.payment_type),
            )
        )
        self._refresh_amount_paid(order)
        self._order_repo.add_activity(
            order,
            ActivityAction.PAYMENT_RECORDED,
            f"{payment.payment_type} payment of {payment.amount} recorded",
            self._clock(),
            performed_by,
        )
        logger.info(
            "order.payment_recorded",
            order_id=str(order.id),
            amount=str(payment.amount),
            payment_type=str(payment.payment_type),
            payment_status=order.payment_status,
        )
        return payment

    def _refresh_amount_paid(self, order: Order) -> None:
        order.amount_paid = self._order_repo.payments_total(order)
        order.payment_status = self._payment_status(order)
        self._order_repo.save(order)

    @staticmethod
    def _payment_status(order: Order) -> PaymentStatus:
        return derive_payment_status(
            order.price_with_gst, order.amount_paid, order.advance_percentage
        )


def _describe_changes(order: Order, changes: Dict[str, Any]) -> List[str]:
    details = []
    for field in ("price", "discount", "quantity"):
        if field in changes and Decimal(str(changes[field])) != Decimal(
            str(getattr(order, field))
        ):
            label = field.capitalize()
            details.append(
                f"{label} changed from {getattr(order, field)} to {changes[field]}"
            )
    for field, label in (
        ("expected_delivery", "Expected delivery"),
        ("order_date", "Order date"),
    ):
        if field in changes:
            old = getattr(order, field)
            old_date = old.date().isoformat() if old else "Not Set"
            new_date = changes[field].date().isoformat()
            if old_date != new_date:
                details.append(f"{label} changed from {old_date} to {new_date}")
    if "notes" in changes and changes["notes"] != order.notes:
        details.append("Notes updated")
    return details
