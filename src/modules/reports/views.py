"""Reporting endpoints backed by ``QueryViews``."""

from __future__ import annotations

from datetime import date

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.api import domain_error_response
from modules.core.principal import Principal, current_principal
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.reports.services import QueryViews
from shared.domain.exceptions import AuthorizationError, DomainError


def _query_views() -> QueryViews:
    return QueryViews(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


def _require_admin(principal: Principal, action: str) -> None:
    if not principal.is_admin:
        raise AuthorizationError(principal.id, action)


class EarningsView(APIView):
    """GET /api/v1/reports/earnings/?agent=<id>&date=YYYY-MM-DD

    Agents get their own card (``agent`` is ignored); admins must name the
    agent.  ``date`` defaults to today.
    """

    def get(self, request: Request) -> Response:
        principal = current_principal(request)
        raw_date = request.query_params.get("date")
        try:
            day = date.fromisoformat(raw_date) if raw_date else None
        except ValueError:
            return Response(
                {"detail": "date must be YYYY-MM-DD.", "code": "invalid_request"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            if principal.is_agent:
                agent_id = principal.id
            else:
                _require_admin(principal, "view agent earnings")
                agent_id = request.query_params.get("agent", "")
                if not agent_id:
                    return Response(
                        {"detail": "agent is required.", "code": "invalid_request"},
                        status=status.HTTP_400_BAD_REQUEST,
                    )
            summary = _query_views().earnings_summary(agent_id, day=day)
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(summary.model_dump(mode="json"))


class DashboardView(APIView):
    """GET /api/v1/reports/dashboard/ (admin)"""

    def get(self, request: Request) -> Response:
        try:
            _require_admin(current_principal(request), "view the dashboard")
            summary = _query_views().dashboard_summary()
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(summary.model_dump(mode="json"))


class StockView(APIView):
    """GET /api/v1/reports/stock/ (admin)"""

    def get(self, request: Request) -> Response:
        try:
            _require_admin(current_principal(request), "view stock figures")
            summary = _query_views().stock_summary()
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(summary.model_dump(mode="json"))
