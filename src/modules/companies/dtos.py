"""Company DTOs."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class CreateCompanyDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    company_name: str
    trade_name: str
    gst_number: str
    billing_address: str
    short_code: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: str = ""

    @field_validator("company_name")
    @classmethod
    def name_min_length(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Company name must be at least 3 characters.")
        return v

    @field_validator("gst_number")
    @classmethod
    def gst_upper(cls, v: str) -> str:
        return v.upper()
