"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    order_number: str = ""
    stage: str = ""


@dataclass(frozen=True)
class OrderStageChanged(DomainEvent):
    """Raised when a transition actually moved the order."""

    order_number: str = ""
    from_stage: str = ""
    to_stage: str = ""


@dataclass(frozen=True)
class PaymentRecorded(DomainEvent):
    order_number: str = ""
    amount: str = "0"
    payment_type: str = ""
