"""Integration tests for ComplaintService."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.clients.models import Client
from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.complaints.constants import ComplaintPriority, ComplaintStatus, ReaderSide
from modules.complaints.dtos import OpenComplaintDTO, RespondComplaintDTO
from modules.complaints.exceptions import ComplaintNotFound, ComplaintOrderMismatch
from modules.complaints.models import Complaint
from modules.complaints.repositories.django_repository import ComplaintDjangoRepository
from modules.complaints.services import ComplaintService
from modules.orders.exceptions import ClientNotFound, OrderNotFound
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def service(clock):
    return ComplaintService(
        ComplaintDjangoRepository(),
        OrderDjangoRepository(),
        ClientDjangoRepository(),
        clock=clock,
    )


@pytest.fixture()
def order(make_order):
    return make_order()


def _open(service, order, client_id=None, **overrides):
    data = {
        "order_id": order.id,
        "client_id": client_id or order.client_id,
        "subject": "Wrong collar colour",
        "description": "Collars are navy instead of black.",
    }
    data.update(overrides)
    return service.open_complaint(OpenComplaintDTO(**data))


class TestOpenComplaint:
    def test_open(self, service, order):
        complaint = _open(service, order, priority=ComplaintPriority.HIGH)

        assert complaint.status == ComplaintStatus.OPEN
        assert complaint.priority == ComplaintPriority.HIGH
        assert complaint.is_read_by_client is True
        assert complaint.is_read_by_admin is False
        assert complaint.resolved_at is None

    def test_order_must_exist(self, service, order):
        with pytest.raises(OrderNotFound):
            service.open_complaint(
                OpenComplaintDTO(
                    order_id=uuid4(),
                    client_id=order.client_id,
                    subject="x",
                    description="y",
                )
            )

    def test_client_must_exist(self, service, order):
        with pytest.raises(ClientNotFound):
            _open(service, order, client_id=uuid4())

    def test_order_must_belong_to_client(self, service, order, company):
        stranger = Client.objects.create(
            name="Rohit Verma", email="rohit@example.com", company=company
        )
        with pytest.raises(ComplaintOrderMismatch):
            _open(service, order, client_id=stranger.id)
        assert not Complaint.objects.exists()


class TestRespond:
    def test_resolving_stamps_resolution_time(self, service, order, clock):
        complaint = _open(service, order)
        resolved_at = clock.advance(hours=5)

        updated = service.respond(
            str(complaint.id),
            RespondComplaintDTO(
                status=ComplaintStatus.RESOLVED, admin_response="Replacement shipped."
            ),
        )

        assert updated.resolved_at == resolved_at
        assert updated.admin_response == "Replacement shipped."
        assert updated.is_read_by_admin is True
        assert updated.is_read_by_client is False

    def test_reopening_clears_resolution_time(self, service, order):
        complaint = _open(service, order)
        service.respond(str(complaint.id), RespondComplaintDTO(status=ComplaintStatus.RESOLVED))

        updated = service.respond(
            str(complaint.id), RespondComplaintDTO(status=ComplaintStatus.IN_PROGRESS)
        )

        assert updated.resolved_at is None
        assert updated.status == ComplaintStatus.IN_PROGRESS

    def test_missing_complaint(self, service):
        with pytest.raises(ComplaintNotFound):
            service.respond(str(uuid4()), RespondComplaintDTO(status=ComplaintStatus.CLOSED))


class TestReadFlagsAndQueries:
    def test_client_reads_response(self, service, order):
        complaint = _open(service, order)
        service.respond(str(complaint.id), RespondComplaintDTO(status=ComplaintStatus.CLOSED))

        updated = service.mark_read(str(complaint.id), ReaderSide.CLIENT)

        assert updated.is_read_by_client is True

    def test_admin_reads_new_complaint(self, service, order):
        complaint = _open(service, order)

        assert service.mark_read(str(complaint.id), ReaderSide.ADMIN).is_read_by_admin

    def test_list_and_delete(self, service, order):
        first = _open(service, order)
        _open(service, order, subject="Late delivery")

        assert len(service.list_complaints({"order": order})) == 2

        service.delete_complaint(str(first.id))
        assert len(service.list_complaints()) == 1
        with pytest.raises(ComplaintNotFound):
            service.delete_complaint(str(first.id))
