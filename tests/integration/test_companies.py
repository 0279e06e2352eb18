"""Integration tests for CompanyService."""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.core.exceptions import ValidationError
from pydantic import ValidationError as DTOValidationError

from modules.companies.dtos import CreateCompanyDTO
from modules.companies.exceptions import CompanyAlreadyExists, CompanyNotFound
from modules.companies.models import Company
from modules.companies.repositories.django_repository import CompanyDjangoRepository
from modules.companies.services import CompanyService

pytestmark = pytest.mark.integration


@pytest.fixture()
def service():
    return CompanyService(CompanyDjangoRepository())


def _dto(**overrides) -> CreateCompanyDTO:
    data = {
        "company_name": "Blue Lotus Apparel",
        "trade_name": "Blue Lotus",
        "gst_number": "29abcde1234f1z5",
        "billing_address": "12 MG Road, Bengaluru",
    }
    data.update(overrides)
    return CreateCompanyDTO(**data)


def test_create_derives_short_code(service):
    company = service.create_company(_dto())

    assert company.short_code == "BLA"
    assert company.gst_number == "29ABCDE1234F1Z5"


def test_short_code_collision_uses_fallback(service, company):
    created = service.create_company(
        _dto(company_name="Sun Trade Partners", gst_number="33AACCK4321M1ZQ")
    )

    assert company.short_code == "STP"
    assert created.short_code == "SUN"


def test_explicit_short_code(service):
    assert service.create_company(_dto(short_code="blu")).short_code == "BLU"


def test_explicit_short_code_must_be_free(service, company):
    with pytest.raises(CompanyAlreadyExists):
        service.create_company(_dto(short_code="STP"))


def test_duplicate_gst_number(service, company):
    with pytest.raises(CompanyAlreadyExists):
        service.create_company(_dto(gst_number=company.gst_number))


def test_invalid_gst_number(service):
    with pytest.raises(ValidationError):
        service.create_company(_dto(gst_number="NOT-A-GSTIN"))
    assert not Company.objects.exists()


def test_short_name_is_rejected_by_dto():
    with pytest.raises(DTOValidationError):
        _dto(company_name="AB")


def test_soft_delete_hides_company(service, company):
    service.delete_company(str(company.id))

    with pytest.raises(CompanyNotFound):
        service.get_company(str(company.id))
    assert Company.objects.filter(id=company.id).exists()
    assert service.list_companies() == []


def test_delete_missing_company(service):
    with pytest.raises(CompanyNotFound):
        service.delete_company(str(uuid4()))
