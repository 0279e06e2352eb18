"""Order API views.

Exposes ``OrderService`` via HTTP using a DRF ``GenericViewSet``.
Domain exceptions are caught and translated into HTTP status codes;
generic exceptions are never swallowed.
"""

from __future__ import annotations

from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.clients.repositories.django_repository import ClientDjangoRepository
from modules.companies.repositories.django_repository import CompanyDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    CreateOrderDTO,
    PaymentDTO,
    TransitionStageDTO,
    UpdateOrderDTO,
    UpdatePaymentDTO,
)
from modules.orders.exceptions import (
    ClientNotFound,
    CompanyNotFound,
    OrderNotFound,
    PaymentNotFound,
    ProductNotFound,
    UnknownStage,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    BoardCardSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    OrderStatsSerializer,
    PaymentSerializer,
    TransitionSerializer,
    UpdateOrderSerializer,
    UpdatePaymentSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository


def _not_found(message: str = "Order not found.") -> Response:
    return Response({"detail": message}, status=status.HTTP_404_NOT_FOUND)


def _dto_errors(exc: DTOValidationError) -> Response:
    return Response(
        {"detail": exc.errors(include_url=False, include_context=False)},
        status=status.HTTP_400_BAD_REQUEST,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    All writes go through ``OrderService``; the queryset only backs
    filtering, search and ordering of the list endpoint.
    """

    queryset = Order.objects.select_related("company", "client", "product")
    filterset_class = OrderFilter
    search_fields = ["order_number", "client__name", "company__company_name"]
    ordering_fields = ["order_date", "expected_delivery", "price_with_gst", "current_stage"]
    ordering = ["-order_date", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            company_repository=CompanyDjangoRepository(),
            client_repository=ClientDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "board", "stats"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_serializer_context(self) -> dict:
        context = super().get_serializer_context()
        context["now"] = timezone.now()
        context["sequence"] = self._service.sequence
        return context

    def _render(self, order: Order, status_code: int = status.HTTP_200_OK) -> Response:
        serializer = OrderSerializer(order, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    def _performer(self, request: Request) -> str:
        return request.user.get_username() if request.user else ""

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            dto = CreateOrderDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return _dto_errors(exc)

        try:
            order = self._service.create_order(dto, performed_by=self._performer(request))
        except (CompanyNotFound, ClientNotFound, ProductNotFound) as exc:
            return _not_found(str(exc))

        return self._render(order, status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filters: company, client, payment_status, stage (name or alias),
        start_date, end_date.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(
            page, many=True, context=self.get_serializer_context()
        )
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(str(pk))
        except OrderNotFound:
            return _not_found()
        return self._render(order)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Edits order details.  The stage is changed through
        ``POST /orders/{id}/transition/``.
        """
        serializer = UpdateOrderSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            dto = UpdateOrderDTO(**serializer.validated_data)
        except DTOValidationError as exc:
            return _dto_errors(exc)

        try:
            order = self._service.update_order(
                str(pk), dto, performed_by=self._performer(request)
            )
        except OrderNotFound:
            return _not_found()
        return self._render(order)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/"""
        try:
            self._service.delete_order(str(pk))
        except OrderNotFound:
            return _not_found()
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def transition(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/transition/

        Body: ``{"stage": "<name or alias>", "notes": "..."}``.
        Moving to the current stage answers 200 with ``changed: false``.
        """
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = TransitionStageDTO(**serializer.validated_data)

        try:
            result = self._service.transition_stage(
                str(pk),
                dto.stage,
                notes=dto.notes,
                performed_by=self._performer(request),
            )
        except OrderNotFound:
            return _not_found()
        except UnknownStage as exc:
            return Response(
                {"detail": str(exc), "stage": exc.stage},
                status=status.HTTP_400_BAD_REQUEST,
            )

        order = OrderSerializer(result.order, context=self.get_serializer_context())
        return Response({"changed": result.changed, "order": order.data})

    @action(detail=False, methods=["get"])
    def board(self, request: Request) -> Response:
        """GET /api/v1/orders/board/

        Kanban columns in pipeline order.  Completed orders drop off once
        the retention window has passed.
        """
        context = self.get_serializer_context()
        columns = self._service.board(now=context["now"])
        return Response(
            {
                "columns": [
                    {
                        "stage": stage_name,
                        "count": len(orders),
                        "orders": BoardCardSerializer(
                            orders, many=True, context=context
                        ).data,
                    }
                    for stage_name, orders in columns.items()
                ]
            }
        )

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/orders/stats/

        Dashboard totals: orders per stage and per payment status, revenue.
        """
        return Response(OrderStatsSerializer(self._service.stats()).data)

    @action(detail=False, methods=["get"], url_path="next-number")
    def next_number(self, request: Request) -> Response:
        """GET /api/v1/orders/next-number/?company=<id>"""
        company_id = request.query_params.get("company")
        if not company_id:
            return Response(
                {"detail": "Query parameter 'company' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            order_number = self._service.next_order_number(company_id)
        except CompanyNotFound as exc:
            return _not_found(str(exc))
        return Response({"order_number": order_number})

    # ------------------------------------------------------------------
    # Payments ledger
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def payments(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/payments/"""
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.add_payment(
                str(pk),
                PaymentDTO(**serializer.validated_data),
                performed_by=self._performer(request),
            )
        except OrderNotFound:
            return _not_found()
        return self._render(order, status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["patch", "delete"],
        url_path=r"payments/(?P<payment_id>[^/.]+)",
    )
    def payment_detail(
        self, request: Request, pk: str | None = None, payment_id: str | None = None
    ) -> Response:
        """PATCH|DELETE /api/v1/orders/{pk}/payments/{payment_id}/"""
        try:
            if request.method == "DELETE":
                order = self._service.delete_payment(
                    str(pk), str(payment_id), performed_by=self._performer(request)
                )
            else:
                serializer = UpdatePaymentSerializer(data=request.data, partial=True)
                serializer.is_valid(raise_exception=True)
                order = self._service.update_payment(
                    str(pk),
                    str(payment_id),
                    UpdatePaymentDTO(**serializer.validated_data),
                    performed_by=self._performer(request),
                )
        except OrderNotFound:
            return _not_found()
        except PaymentNotFound:
            return _not_found("Payment not found.")
        return self._render(order)
