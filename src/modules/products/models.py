"""Garment product catalogue.

- Base price is the default per-piece price offered when an order is
  raised; orders keep their own negotiated price.
- SKU is optional but unique when present, normalised to uppercase.
- Soft delete via ``deleted_at``.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel


class ProductCategory(models.TextChoices):
    APPAREL = "Apparel", "Apparel"
    ACCESSORIES = "Accessories", "Accessories"
    HOME_TEXTILES = "Home Textiles", "Home Textiles"
    CORPORATE_GIFTS = "Corporate Gifts", "Corporate Gifts"
    OTHER = "Other", "Other"


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    DISCONTINUED = "discontinued", "Discontinued"


class ProductUnit(models.TextChoices):
    PIECE = "piece", "Piece"
    METER = "meter", "Meter"
    KG = "kg", "Kg"
    BOX = "box", "Box"


class Product(SoftDeleteModel):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    category = models.CharField(
        max_length=32,
        choices=ProductCategory.choices,
        default=ProductCategory.APPAREL,
    )
    sku = models.CharField(max_length=64, unique=True, null=True, blank=True)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    unit = models.CharField(
        max_length=10, choices=ProductUnit.choices, default=ProductUnit.PIECE
    )
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category", "status"], name="products_cat_status_idx"),
        ]

    def clean(self) -> None:
        super().clean()
        if len((self.name or "").strip()) < 3:
            raise ValidationError({"name": "Product name must be at least 3 characters."})
        if self.base_price is not None and self.base_price < 0:
            raise ValidationError({"base_price": "Price must be positive."})

    def save(self, *args, **kwargs) -> None:
        self.sku = self.sku.strip().upper() if self.sku else None
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name if not self.sku else f"{self.sku} - {self.name}"
