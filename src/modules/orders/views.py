"""Order API views.

Exposes ``OrderService`` and ``DeliveryAssigner`` via HTTP using DRF
ViewSets.  Domain exceptions are caught and translated into HTTP status
codes by ``domain_error_response``; the view never swallows generic
exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.api import domain_error_response, validation_error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.core.principal import current_principal
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.serializers import DeliverySerializer
from modules.deliveries.services import DeliveryAssigner
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AssignOrderSerializer,
    BulkAssignSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PayOrderSerializer,
    UpdateOrderStatusSerializer,
    VersionedSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.domain.exceptions import DomainError


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["id", "customer_id", "delivery_address"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._order_repo = OrderDjangoRepository()
        delivery_repo = DeliveryDjangoRepository()
        self._service = OrderService(
            order_repository=self._order_repo,
            product_repository=ProductDjangoRepository(),
            delivery_repository=delivery_repo,
        )
        self._assigner = DeliveryAssigner(
            order_repository=self._order_repo,
            delivery_repository=delivery_repo,
            order_service=self._service,
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        principal = current_principal(request)
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        try:
            dto = CreateOrderDTO(
                customer_id=data.get("customer_id") or principal.id,
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                payment_method=data["payment_method"],
                delivery_address=data["delivery_address"],
                notes=data.get("notes", ""),
            )
        except PydanticValidationError as exc:
            return validation_error_response(exc)

        try:
            order = self._service.create_order(principal, dto)
        except DomainError as exc:
            return domain_error_response(exc)

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        """Role-scoped: customers their own orders, agents the orders they
        were assigned, admins everything."""
        principal = current_principal(self.request)
        if principal.is_admin:
            return self._order_repo.queryset()
        if principal.is_agent:
            return self._order_repo.queryset(agent_id=principal.id)
        return self._order_repo.queryset(customer_id=principal.id)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment status, customer, agent, date range,
        total range) is handled by ``OrderFilter``; ordering by
        ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order_for(current_principal(request), pk)
        except DomainError as exc:
            return domain_error_response(exc)
        serializer = OrderSerializer(order)
        return Response(serializer.data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Admin status change.  ``assigned`` goes through ``/assign/``.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_status(
                current_principal(request),
                order_id=pk,
                new_status=data["status"],
                expected_version=data.get("expected_version"),
                notes=data["notes"],
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel / Pay (dedicated actions)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels the order and fails its active delivery, if any.
        """
        serializer = VersionedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.cancel_order(
                current_principal(request),
                order_id=pk,
                expected_version=data.get("expected_version"),
                notes=data["notes"],
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def pay(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/pay/"""
        serializer = PayOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.mark_paid(
                current_principal(request),
                order_id=pk,
                payment_method=data.get("payment_method"),
                expected_version=data.get("expected_version"),
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Assignment
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def assign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/assign/"""
        serializer = AssignOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            delivery = self._assigner.assign_one(
                current_principal(request), pk, data["agent_id"], data["notes"]
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(DeliverySerializer(delivery).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def reassign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/reassign/"""
        serializer = AssignOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            delivery = self._assigner.reassign(
                current_principal(request), pk, data["agent_id"], data["notes"]
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(DeliverySerializer(delivery).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="assign-bulk")
    def assign_bulk(self, request: Request) -> Response:
        """POST /api/v1/orders/assign-bulk/

        Always 200 when the request itself is acceptable; per-order
        failures are listed in ``failed``.
        """
        serializer = BulkAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._assigner.assign_bulk(
                current_principal(request), data["order_ids"], data["agent_id"]
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(result.model_dump(mode="json"))
