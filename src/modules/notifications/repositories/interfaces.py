"""Notification repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, List

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.notifications.models import Notification


class INotificationRepository(IRepository["Notification"]):
    @abstractmethod
    def list_unread(self, recipient_id: str) -> List[Notification]:
        """Unread notifications of a recipient, newest first."""

    @abstractmethod
    def mark_all_read(self, recipient_id: str) -> int:
        """Flag every unread notification of a recipient; returns the count."""
