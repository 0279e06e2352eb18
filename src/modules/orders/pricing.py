"""Order price and payment-status derivations.

- Subtotal = price per piece * quantity.
- Discount is a flat amount; the taxable value never goes below zero.
- GST is a fixed rate on the taxable value.
- Custom charges are added after tax.
- Payment status compares the paid amount to the total and to the
  advance share of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

from modules.orders.constants import (
    DEFAULT_ADVANCE_PERCENTAGE,
    GST_RATE,
    PaymentStatus,
)

CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount: Decimal
    taxable_value: Decimal
    gst_amount: Decimal
    charges_total: Decimal
    total: Decimal


def calculate_totals(
    price: Decimal,
    quantity: int,
    discount: Decimal = Decimal("0"),
    custom_charges: Iterable[Mapping[str, Any]] = (),
) -> PriceBreakdown:
    subtotal = _money(Decimal(str(price)) * quantity)
    discount = _money(discount)
    taxable = max(subtotal - discount, Decimal("0.00"))
    gst = _money(taxable * GST_RATE / 100)
    charges = _money(sum((_money(c.get("amount")) for c in custom_charges), Decimal("0")))
    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        taxable_value=taxable,
        gst_amount=gst,
        charges_total=charges,
        total=taxable + gst + charges,
    )


def derive_payment_status(
    total_due: Decimal,
    amount_paid: Decimal,
    advance_percentage: int = DEFAULT_ADVANCE_PERCENTAGE,
) -> PaymentStatus:
    advance_due = Decimal(str(total_due)) * Decimal(advance_percentage) / 100
    if amount_paid >= total_due:
        return PaymentStatus.PAYMENT_COMPLETED
    if amount_paid >= advance_due:
        return PaymentStatus.ADVANCE_PAYMENT
    return PaymentStatus.BALANCE_REMAINING
