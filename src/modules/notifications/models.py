"""In-app notifications addressed to a client."""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class NotificationType(models.TextChoices):
    DOCUMENT = "document", "Document"
    STATUS_UPDATE = "status_update", "Status update"
    GENERAL = "general", "General"


class Notification(BaseModel):
    recipient = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    message = models.TextField()
    type = models.CharField(
        max_length=20,
        choices=NotificationType.choices,
        default=NotificationType.GENERAL,
    )
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self) -> str:
        return f"[{self.type}] {self.message}"
