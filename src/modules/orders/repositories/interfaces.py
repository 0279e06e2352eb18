"""Order repository interface.

Extends ``IRepository[Order]`` with what the stage engine and the
payments ledger need: a locked fetch, stage-filtered listing, an atomic
timeline commit and ledger access.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.companies.models import Company
    from modules.orders.models import Order, OrderActivity, OrderPayment
    from modules.orders.timeline import TimelineState


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def list_by_stage(self, labels: Iterable[str]) -> List[Order]:
        """Orders whose stored ``current_stage`` is one of *labels*."""

    @abstractmethod
    def list_for_board(
        self,
        labels: Iterable[str],
        terminal_labels: Iterable[str],
        completed_since: datetime,
    ) -> List[Order]:
        """Orders in *labels*, minus those completed before *completed_since*."""

    @abstractmethod
    def start_timeline(self, order: Order, state: TimelineState) -> Order:
        """Persist the initial timeline of a freshly created order."""

    @abstractmethod
    def commit_timeline(
        self, order: Order, state: TimelineState, notes: str = ""
    ) -> Order:
        """Close open stage entries, append the new one and update the order."""

    @abstractmethod
    def add_activity(
        self,
        order: Order,
        action: str,
        details: str,
        timestamp: datetime,
        performed_by: str = "",
    ) -> OrderActivity:
        """Append a record to the order's activity log."""

    @abstractmethod
    def next_order_number(self, company: Company) -> str:
        """Order number the next order of *company* would receive."""

    @abstractmethod
    def summary(self) -> Dict[str, Any]:
        """Order counts by stored stage label and payment status, plus totals.

        Keys: ``by_stage``, ``by_payment_status``, ``total_orders``,
        ``total_revenue``.
        """

    # ------------------------------------------------------------------
    # Payments ledger
    # ------------------------------------------------------------------

    @abstractmethod
    def add_payment(self, order: Order, data: Dict[str, Any]) -> OrderPayment:
        """Record a payment against *order*."""

    @abstractmethod
    def get_payment(self, order: Order, payment_id: str) -> Optional[OrderPayment]:
        """Retrieve one ledger row of *order*."""

    @abstractmethod
    def save_payment(self, payment: OrderPayment) -> OrderPayment:
        """Persist changes to a ledger row."""

    @abstractmethod
    def delete_payment(self, payment: OrderPayment) -> None:
        """Remove a ledger row."""

    @abstractmethod
    def payments_total(self, order: Order) -> Decimal:
        """Sum of the ledger of *order*."""
