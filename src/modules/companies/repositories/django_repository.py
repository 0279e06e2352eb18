"""Django ORM implementation of the Company repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.companies.models import Company
from modules.companies.repositories.interfaces import ICompanyRepository

logger = structlog.get_logger(__name__)


class CompanyDjangoRepository(ICompanyRepository):
    def get_by_id(self, id: str) -> Optional[Company]:
        try:
            return Company.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Company]:
        queryset = Company.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Company) -> Company:
        is_new = entity._state.adding
        entity.save()
        logger.info("company.saved", company_id=str(entity.id), is_new=is_new)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        company = self.get_by_id(id)
        if not company:
            return False
        company.delete()
        logger.info("company.soft_deleted", company_id=str(id))
        return True

    def get_by_gst_number(self, gst_number: str) -> Optional[Company]:
        return Company.objects.alive().filter(gst_number=gst_number.upper()).first()

    def existing_short_codes(self) -> Set[str]:
        return set(Company.objects.values_list("short_code", flat=True))
