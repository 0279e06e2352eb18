"""Client complaints raised against an order.

- ``resolved_at`` is stamped when the status becomes Resolved and cleared
  by any other status.
- Read flags are tracked per side so each party sees what is new.
"""

from __future__ import annotations

from django.db import models

from modules.complaints.constants import ComplaintPriority, ComplaintStatus
from modules.core.models import BaseModel


class Complaint(BaseModel):
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    client = models.ForeignKey(
        "clients.Client",
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    subject = models.CharField(max_length=255)
    description = models.TextField()
    priority = models.CharField(
        max_length=10,
        choices=ComplaintPriority.choices,
        default=ComplaintPriority.MEDIUM,
    )
    status = models.CharField(
        max_length=16,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.OPEN,
    )
    is_read_by_admin = models.BooleanField(default=False)
    is_read_by_client = models.BooleanField(default=False)
    admin_response = models.TextField(blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "complaints"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="complaints_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.subject} [{self.status}]"
