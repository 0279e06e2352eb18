"""Company repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional, Set

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.companies.models import Company


class ICompanyRepository(IRepository["Company"]):
    """Repository contract for the Company aggregate."""

    @abstractmethod
    def get_by_gst_number(self, gst_number: str) -> Optional[Company]:
        """Retrieve a live company by GSTIN."""

    @abstractmethod
    def existing_short_codes(self) -> Set[str]:
        """All short codes in use, soft-deleted companies included."""
