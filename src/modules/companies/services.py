"""Company service layer.

- GSTIN is unique among live companies.
- A short code is derived from the company name unless one is supplied;
  either way it must not collide with any existing code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction

from modules.companies.codes import generate_short_code
from modules.companies.exceptions import CompanyAlreadyExists, CompanyNotFound
from modules.companies.models import Company

if TYPE_CHECKING:
    from modules.companies.dtos import CreateCompanyDTO
    from modules.companies.repositories.interfaces import ICompanyRepository

logger = structlog.get_logger(__name__)


class CompanyService:
    def __init__(self, repository: ICompanyRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_company(self, dto: CreateCompanyDTO) -> Company:
        """Register a company and assign its short code.

        Raises:
            CompanyAlreadyExists: if the GST number or an explicit short
                code is already taken.
        """
        log = logger.bind(company_name=dto.company_name, gst_number=dto.gst_number)

        if self._repo.get_by_gst_number(dto.gst_number):
            log.warning("company.duplicate_gst_number")
            raise CompanyAlreadyExists("GST number already registered.")

        existing = self._repo.existing_short_codes()
        if dto.short_code:
            short_code = dto.short_code.upper()
            if short_code in existing:
                log.warning("company.duplicate_short_code", short_code=short_code)
                raise CompanyAlreadyExists(f"Short code {short_code} already in use.")
        else:
            short_code = generate_short_code(dto.company_name, existing)

        company = Company(
            company_name=dto.company_name,
            trade_name=dto.trade_name,
            gst_number=dto.gst_number,
            billing_address=dto.billing_address,
            short_code=short_code,
            contact_email=dto.contact_email or "",
            contact_phone=dto.contact_phone,
        )
        company.clean()
        company = self._repo.save(company)
        log.info("company.created", company_id=str(company.id), short_code=short_code)
        return company

    def get_company(self, id: str) -> Company:
        """Raises:
            CompanyNotFound: if the company does not exist.
        """
        company = self._repo.get_by_id(id)
        if not company:
            raise CompanyNotFound(f"Company {id} not found.")
        return company

    def list_companies(self, filters: Optional[Dict[str, Any]] = None) -> List[Company]:
        return self._repo.list(filters)

    @transaction.atomic
    def delete_company(self, id: str) -> None:
        """Raises:
            CompanyNotFound: if the company does not exist.
        """
        if not self._repo.delete(id):
            raise CompanyNotFound(f"Company {id} not found.")
        logger.info("company.deleted", company_id=str(id))
