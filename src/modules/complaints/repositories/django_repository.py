"""Django ORM implementation of the Complaint repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.complaints.models import Complaint
from modules.complaints.repositories.interfaces import IComplaintRepository

logger = structlog.get_logger(__name__)


class ComplaintDjangoRepository(IComplaintRepository):
    def get_by_id(self, id: str) -> Optional[Complaint]:
        try:
            return (
                Complaint.objects.select_related("order", "client").filter(id=id).first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Complaint]:
        queryset = Complaint.objects.select_related("order", "client")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Complaint) -> Complaint:
        entity.save()
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        complaint = self.get_by_id(id)
        if not complaint:
            return False
        complaint.delete()
        logger.info("complaint.deleted", complaint_id=str(id))
        return True
