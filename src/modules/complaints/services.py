"""Complaint service.

Clients open complaints against their own orders; staff respond and
move them through Open / In Progress / Resolved / Closed.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.complaints.constants import ComplaintStatus, ReaderSide
from modules.complaints.exceptions import ComplaintNotFound, ComplaintOrderMismatch
from modules.complaints.models import Complaint
from modules.orders.exceptions import ClientNotFound, OrderNotFound

if TYPE_CHECKING:
    from modules.clients.repositories.interfaces import IClientRepository
    from modules.complaints.dtos import OpenComplaintDTO, RespondComplaintDTO
    from modules.complaints.repositories.interfaces import IComplaintRepository
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class ComplaintService:
    def __init__(
        self,
        repository: IComplaintRepository,
        order_repository: IOrderRepository,
        client_repository: IClientRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._repo = repository
        self._order_repo = order_repository
        self._client_repo = client_repository
        self._clock = clock

    @transaction.atomic
    def open_complaint(self, dto: OpenComplaintDTO) -> Complaint:
        """Raises:
            OrderNotFound: order does not exist.
            ClientNotFound: client does not exist.
            ComplaintOrderMismatch: the order belongs to another client.
        """
        order = self._order_repo.get_by_id(str(dto.order_id))
        if not order:
            raise OrderNotFound(f"Order {dto.order_id} not found.")
        client = self._client_repo.get_by_id(str(dto.client_id))
        if not client:
            raise ClientNotFound(f"Client {dto.client_id} not found.")
        if order.client_id != client.id:
            raise ComplaintOrderMismatch(
                f"Order {order.order_number} does not belong to this client."
            )

        complaint = Complaint(
            order=order,
            client=client,
            subject=dto.subject,
            description=dto.description,
            priority=dto.priority,
            is_read_by_client=True,
        )
        complaint = self._repo.save(complaint)
        logger.info(
            "complaint.opened",
            complaint_id=str(complaint.id),
            order_number=order.order_number,
            priority=str(dto.priority),
        )
        return complaint

    @transaction.atomic
    def respond(self, complaint_id: str, dto: RespondComplaintDTO) -> Complaint:
        """Set the status and, optionally, the staff response.

        Raises:
            ComplaintNotFound: complaint does not exist.
        """
        complaint = self.get_complaint(complaint_id)

        complaint.status = dto.status
        if dto.admin_response is not None:
            complaint.admin_response = dto.admin_response
        if dto.status == ComplaintStatus.RESOLVED:
            complaint.resolved_at = self._clock()
        else:
            complaint.resolved_at = None
        complaint.is_read_by_admin = True
        complaint.is_read_by_client = False

        complaint = self._repo.save(complaint)
        logger.info(
            "complaint.responded",
            complaint_id=str(complaint.id),
            status=str(dto.status),
        )
        return complaint

    @transaction.atomic
    def mark_read(self, complaint_id: str, side: ReaderSide) -> Complaint:
        """Raises:
            ComplaintNotFound: complaint does not exist.
        """
        complaint = self.get_complaint(complaint_id)
        field = (
            "is_read_by_admin" if side == ReaderSide.ADMIN else "is_read_by_client"
        )
        if not getattr(complaint, field):
            setattr(complaint, field, True)
            complaint = self._repo.save(complaint)
        return complaint

    def get_complaint(self, complaint_id: str) -> Complaint:
        """Raises:
            ComplaintNotFound: complaint does not exist.
        """
        complaint = self._repo.get_by_id(complaint_id)
        if not complaint:
            raise ComplaintNotFound(f"Complaint {complaint_id} not found.")
        return complaint

    def list_complaints(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[Complaint]:
        return self._repo.list(filters)

    @transaction.atomic
    def delete_complaint(self, complaint_id: str) -> None:
        """Raises:
            ComplaintNotFound: complaint does not exist.
        """
        if not self._repo.delete(complaint_id):
            raise ComplaintNotFound(f"Complaint {complaint_id} not found.")
