"""Celery tasks for the Orders module."""

from __future__ import annotations

import structlog
from celery import shared_task

from modules.core.models import OutboxEvent
from modules.orders.repositories.django_repository import OUTBOX_TOPIC
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

DISPATCH_BATCH_SIZE = 100


@shared_task(name="orders.dispatch_outbox_events")
def dispatch_outbox_events(batch_size: int = DISPATCH_BATCH_SIZE) -> dict:
    """Publish pending order events to the in-process bus.

    A row whose handlers fail is marked ``FAILED`` with the error; the
    rest of the batch is still dispatched.
    """
    published = failed = 0
    for row in OutboxEvent.objects.pending(OUTBOX_TOPIC)[:batch_size]:
        log = logger.bind(outbox_id=str(row.id), event_type=row.event_type)
        event_class = event_bus.event_class(row.event_type)
        if event_class is None:
            log.error("outbox.unknown_event_type")
            row.mark_as_failed(f"No handler registered for {row.event_type}.")
            failed += 1
            continue
        try:
            event_bus.publish(event_class.from_payload(row.payload))
        except Exception as exc:
            log.exception("outbox.dispatch_failed")
            row.mark_as_failed(str(exc))
            failed += 1
            continue
        row.mark_as_published()
        published += 1

    logger.info("outbox.dispatched", published=published, failed=failed)
    return {"published": published, "failed": failed}
