"""Order DTOs for the Service Layer.

Immutable pydantic models passed from the API layer to ``OrderService``.
Update DTOs use ``None`` for "leave unchanged".
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.orders.constants import DEFAULT_ADVANCE_PERCENTAGE, PaymentType

class CustomChargeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    amount: Decimal = Decimal("0")

    @field_validator("amount")
    @classmethod
    def amount_not_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Charge amount must be positive.")
        return v


class CreateOrderDTO(BaseModel):
    """Order creation request.

    ``amount_paid`` is recorded as the initial ``Advance`` payment.  GST is
    not an input: every order is taxed at the fixed rate.
    """

    model_config = ConfigDict(frozen=True)

    company_id: UUID
    client_id: UUID
    product_id: UUID
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    custom_charges: List[CustomChargeDTO] = Field(default_factory=list)
    advance_percentage: int = Field(default=DEFAULT_ADVANCE_PERCENTAGE, ge=0, le=100)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    order_date: Optional[datetime] = None
    expected_delivery: datetime
    shipping_address: str
    notes: str = ""
    internal_notes: str = ""

    @field_validator("shipping_address")
    @classmethod
    def address_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Shipping address is required.")
        return v


class UpdateOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: Optional[int] = Field(default=None, ge=1)
    price: Optional[Decimal] = Field(default=None, ge=0)
    discount: Optional[Decimal] = Field(default=None, ge=0)
    custom_charges: Optional[List[CustomChargeDTO]] = None
    advance_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    order_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None


class TransitionStageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: str = Field(min_length=1)
    notes: str = ""


class PaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(gt=0)
    paid_on: Optional[datetime] = None
    payment_type: PaymentType = PaymentType.INSTALLMENT
    notes: str = ""


class UpdatePaymentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Optional[Decimal] = Field(default=None, gt=0)
    paid_on: Optional[datetime] = None
    payment_type: Optional[PaymentType] = None
    notes: Optional[str] = None
