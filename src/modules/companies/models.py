"""Company model.

- GST number (GSTIN) is unique and validated against the 15-character format.
- ``short_code`` is unique and feeds order numbers; assigned by
  ``CompanyService`` when not given explicitly.
- Soft delete via ``deleted_at`` (orders keep pointing at the row).
"""

from __future__ import annotations

import re

import structlog
from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


class CompanyStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    SUSPENDED = "suspended", "Suspended"


class Company(SoftDeleteModel):
    company_name = models.CharField(max_length=255)
    trade_name = models.CharField(max_length=255)
    gst_number = models.CharField(max_length=15, unique=True)
    billing_address = models.TextField()
    short_code = models.CharField(max_length=5, unique=True)
    status = models.CharField(
        max_length=20,
        choices=CompanyStatus.choices,
        default=CompanyStatus.ACTIVE,
    )
    contact_email = models.EmailField(blank=True, default="")
    contact_phone = models.CharField(max_length=20, blank=True, default="")

    class Meta:
        db_table = "companies"
        ordering = ["company_name"]
        verbose_name_plural = "companies"

    def clean(self) -> None:
        super().clean()
        if self.gst_number:
            self.gst_number = self.gst_number.strip().upper()
        if not GSTIN_PATTERN.match(self.gst_number or ""):
            raise ValidationError({"gst_number": "Please provide a valid GST number."})
        if len((self.company_name or "").strip()) < 3:
            raise ValidationError(
                {"company_name": "Company name must be at least 3 characters."}
            )

    def save(self, *args, **kwargs) -> None:
        if self.gst_number:
            self.gst_number = self.gst_number.strip().upper()
        if self.short_code:
            self.short_code = self.short_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.company_name} [{self.short_code}]"
