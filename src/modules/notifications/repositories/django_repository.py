"""Django ORM implementation of the Notification repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction

from modules.notifications.models import Notification
from modules.notifications.repositories.interfaces import INotificationRepository


class NotificationDjangoRepository(INotificationRepository):
    def get_by_id(self, id: str) -> Optional[Notification]:
        try:
            return Notification.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Notification]:
        queryset = Notification.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def list_unread(self, recipient_id: str) -> List[Notification]:
        return self.list({"recipient_id": recipient_id, "is_read": False})

    @transaction.atomic
    def save(self, entity: Notification) -> Notification:
        entity.save()
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        notification = self.get_by_id(id)
        if not notification:
            return False
        notification.delete()
        return True

    @transaction.atomic
    def mark_all_read(self, recipient_id: str) -> int:
        return Notification.objects.filter(
            recipient_id=recipient_id, is_read=False
        ).update(is_read=True)
