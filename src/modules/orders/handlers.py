"""Event handlers for Orders domain events.

Handlers run when the outbox is drained, after the originating
transaction has committed.
"""

from __future__ import annotations

import structlog

from modules.notifications.models import NotificationType
from modules.notifications.repositories.django_repository import (
    NotificationDjangoRepository,
)
from modules.notifications.services import NotificationService
from modules.orders.events import OrderCreated, OrderStageChanged, PaymentRecorded
from modules.orders.models import Order
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            stage=event.stage,
        )


class OrderStageChangedHandler(IEventHandler[OrderStageChanged]):
    """Tells the order's client that the order moved."""

    def __init__(self, notifications: NotificationService) -> None:
        self._notifications = notifications

    def handle(self, event: OrderStageChanged) -> None:
        log = logger.bind(order_id=str(event.aggregate_id), to_stage=event.to_stage)
        client_id = (
            Order.objects.filter(id=event.aggregate_id)
            .values_list("client_id", flat=True)
            .first()
        )
        if client_id is None:
            log.info("order.event.stage_changed_order_gone")
            return

        self._notifications.notify(
            recipient_id=client_id,
            message=f"Order #{event.order_number} moved to {event.to_stage}",
            type=NotificationType.STATUS_UPDATE,
            order_id=event.aggregate_id,
        )
        log.info("order.event.stage_changed", from_stage=event.from_stage)


class PaymentRecordedHandler(IEventHandler[PaymentRecorded]):
    def handle(self, event: PaymentRecorded) -> None:
        logger.info(
            "order.event.payment_recorded",
            order_id=str(event.aggregate_id),
            amount=event.amount,
            payment_type=event.payment_type,
        )


order_created_handler = OrderCreatedHandler()
order_stage_changed_handler = OrderStageChangedHandler(
    NotificationService(NotificationDjangoRepository())
)
payment_recorded_handler = PaymentRecordedHandler()
