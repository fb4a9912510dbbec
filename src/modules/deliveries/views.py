"""Delivery API views.

Agents work their own deliveries here; assignment lives on the order
endpoints.
"""

from __future__ import annotations

from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.api import domain_error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.core.principal import current_principal
from modules.deliveries.constants import DeliveryStatus
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.serializers import (
    DeliveryNotesSerializer,
    DeliverySerializer,
    UpdateDeliveryStatusSerializer,
)
from modules.deliveries.services import DeliveryService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository
from shared.domain.exceptions import DomainError


class DeliveryViewSet(GenericViewSet):
    """ViewSet for Delivery operations, backed by ``DeliveryService``."""

    queryset = Delivery.objects.all()
    serializer_class = DeliverySerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repo = OrderDjangoRepository()
        delivery_repo = DeliveryDjangoRepository()
        self._service = DeliveryService(
            delivery_repository=delivery_repo,
            order_repository=order_repo,
            order_service=OrderService(
                order_repository=order_repo,
                product_repository=ProductDjangoRepository(),
                delivery_repository=delivery_repo,
            ),
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/deliveries/?status=

        Agents see their own deliveries, customers those of their orders,
        admins all of them.
        """
        filters = {}
        status_value = request.query_params.get("status")
        if status_value in DeliveryStatus.values:
            filters["status"] = status_value
        deliveries = self._service.list_for_principal(
            current_principal(request), filters
        )

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(deliveries, request)
        serializer = DeliverySerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/deliveries/{pk}/"""
        try:
            delivery = self._service.get_delivery(current_principal(request), pk)
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(DeliverySerializer(delivery).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/deliveries/{pk}/

        ``delivered`` also delivers the order; with ``payment_collected``
        the order is marked paid in the same transaction.
        """
        serializer = UpdateDeliveryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            delivery = self._service.update_status(
                current_principal(request),
                delivery_id=pk,
                new_status=data["status"],
                expected_version=data.get("expected_version"),
                notes=data.get("notes"),
                payment_collected=data["payment_collected"],
                payment_method=data.get("payment_method"),
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(DeliverySerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def notes(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/notes/"""
        serializer = DeliveryNotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            delivery = self._service.append_notes(
                current_principal(request),
                delivery_id=pk,
                note=data["note"],
                expected_version=data.get("expected_version"),
            )
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(DeliverySerializer(delivery).data)
