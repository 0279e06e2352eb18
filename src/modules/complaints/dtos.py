"""Complaint DTOs."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from modules.complaints.constants import ComplaintPriority, ComplaintStatus


class OpenComplaintDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    order_id: UUID
    client_id: UUID
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: ComplaintPriority = ComplaintPriority.MEDIUM


class RespondComplaintDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ComplaintStatus
    admin_response: Optional[str] = None
