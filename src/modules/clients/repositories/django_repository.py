"""Django ORM implementation of the Client repository.

Missing or malformed IDs come back as ``None``; callers decide how to
report them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.clients.models import Client
from modules.clients.repositories.interfaces import IClientRepository

logger = structlog.get_logger(__name__)


class ClientDjangoRepository(IClientRepository):
    def get_by_id(self, id: str) -> Optional[Client]:
        try:
            return Client.objects.alive().select_related("company").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Client]:
        queryset = Client.objects.alive().select_related("company")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: Client) -> Client:
        is_new = entity._state.adding
        entity.save()
        logger.info("client.saved", client_id=str(entity.id), is_new=is_new)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        client = self.get_by_id(id)
        if not client:
            return False
        client.delete()
        logger.info("client.soft_deleted", client_id=str(id))
        return True

    def get_by_email(self, email: str) -> Optional[Client]:
        return Client.objects.alive().filter(email=email.strip().lower()).first()
