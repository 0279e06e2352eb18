"""Order domain constants.

Defines the default production pipeline, payment choices and the
order-number format.
"""

from decimal import Decimal

from django.db import models

ORDER_CONFIRMED = "Order Confirmed"
SHIPPED = "Shipped"
ORDER_COMPLETED = "Order Completed"

DEFAULT_STAGES: list = [
    ORDER_CONFIRMED,
    "Fabric Purchase",
    "Fabric Cutting",
    "Embroidery/Printing",
    "Stitching",
    {"name": "Packing", "aliases": ["Packing & Quality Control"]},
    {"name": SHIPPED, "aliases": ["Delivered", "Logistics & Shipping"]},
    ORDER_COMPLETED,
]

DEFAULT_RETENTION_HOURS = 24


class PaymentStatus(models.TextChoices):
    ADVANCE_PAYMENT = "Advance Payment", "Advance Payment"
    BALANCE_REMAINING = "Balance Remaining", "Balance Remaining"
    PAYMENT_COMPLETED = "Payment Completed", "Payment Completed"


class PaymentType(models.TextChoices):
    ADVANCE = "Advance", "Advance"
    INSTALLMENT = "Installment", "Installment"
    FINAL = "Final", "Final"


class ActivityAction(models.TextChoices):
    ORDER_CREATED = "Order Created", "Order Created"
    ORDER_UPDATED = "Order Updated", "Order Updated"
    STATUS_UPDATED = "Status Updated", "Status Updated"
    PAYMENT_RECORDED = "Payment Recorded", "Payment Recorded"
    PAYMENT_UPDATED = "Payment Updated", "Payment Updated"
    PAYMENT_DELETED = "Payment Deleted", "Payment Deleted"


GST_RATE = Decimal("5")
DEFAULT_ADVANCE_PERCENTAGE = 60

ORDER_NUMBER_PREFIX = "CC/ON"
ORDER_NUMBER_MAX_RETRIES = 5
