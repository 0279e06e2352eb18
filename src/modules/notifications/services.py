"""Notification service.

Creates notifications for clients and manages their read state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog
from django.db import transaction

from modules.notifications.exceptions import NotificationNotFound
from modules.notifications.models import Notification, NotificationType

if TYPE_CHECKING:
    from modules.notifications.repositories.interfaces import INotificationRepository

logger = structlog.get_logger(__name__)


class NotificationService:
    def __init__(self, repository: INotificationRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def notify(
        self,
        recipient_id: str,
        message: str,
        type: str = NotificationType.GENERAL,
        order_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            order_id=order_id,
            message=message,
            type=type,
        )
        notification = self._repo.save(notification)
        logger.info(
            "notification.created",
            notification_id=str(notification.id),
            recipient_id=str(recipient_id),
            type=type,
        )
        return notification

    def list_unread(self, recipient_id: str) -> List[Notification]:
        return self._repo.list_unread(recipient_id)

    @transaction.atomic
    def mark_read(self, notification_id: str, recipient_id: str) -> Notification:
        """Raises:
            NotificationNotFound: missing, or addressed to someone else.
        """
        notification = self._repo.get_by_id(notification_id)
        if not notification or str(notification.recipient_id) != str(recipient_id):
            raise NotificationNotFound(f"Notification {notification_id} not found.")
        if not notification.is_read:
            notification.is_read = True
            notification = self._repo.save(notification)
        return notification

    @transaction.atomic
    def mark_all_read(self, recipient_id: str) -> int:
        count = self._repo.mark_all_read(recipient_id)
        logger.info("notification.all_read", recipient_id=str(recipient_id), count=count)
        return count
