"""Complaint repository interface."""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.complaints.models import Complaint


class IComplaintRepository(IRepository["Complaint"]):
    """Repository contract for complaints."""
