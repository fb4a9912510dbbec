"""Translation of domain errors into HTTP responses.

Views catch ``DomainError`` around every service call and hand it here;
the body always carries ``detail`` and ``code`` plus the offending ids.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple, Type

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response

from modules.deliveries.exceptions import (
    AssignmentError,
    DeliveryNotFound,
    InvalidDeliveryUpdate,
    InvalidReportWindow,
)
from modules.orders.exceptions import (
    ExhaustedRetriesError,
    OrderNotFound,
    OrderValidationError,
)
from shared.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    DomainError,
    IllegalTransitionError,
)

logger = structlog.get_logger(__name__)

# First match wins; subclasses before their bases.
STATUS_BY_ERROR: List[Tuple[Type[DomainError], int]] = [
    (OrderValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidDeliveryUpdate, status.HTTP_400_BAD_REQUEST),
    (InvalidReportWindow, status.HTTP_400_BAD_REQUEST),
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
    (DeliveryNotFound, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AssignmentError, status.HTTP_409_CONFLICT),
    (ExhaustedRetriesError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def error_body(exc: DomainError) -> Dict[str, Any]:
    body: Dict[str, Any] = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, IllegalTransitionError):
        body.update(
            entity=exc.entity,
            entity_id=exc.entity_id,
            from_status=exc.from_status,
            to_status=exc.to_status,
        )
    elif isinstance(exc, ConflictError):
        body.update(
            entity=exc.entity,
            entity_id=exc.entity_id,
            expected_version=exc.expected_version,
        )
    elif isinstance(exc, AssignmentError):
        body.update(order_id=exc.order_id, delivery_id=exc.delivery_id)
    elif hasattr(exc, "product_ids"):
        body["product_ids"] = exc.product_ids
    return body


def domain_error_response(exc: DomainError) -> Response:
    http_status = next(
        (code for error, code in STATUS_BY_ERROR if isinstance(exc, error)),
        status.HTTP_400_BAD_REQUEST,
    )
    if http_status >= 500:
        logger.error("api.domain_error", code=exc.code, detail=str(exc))
    else:
        logger.info("api.domain_error", code=exc.code, status_code=http_status)
    return Response(error_body(exc), status=http_status)


def validation_error_response(exc: PydanticValidationError) -> Response:
    return Response(
        {
            "detail": "Invalid request.",
            "code": "invalid_request",
            "errors": [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        },
        status=status.HTTP_400_BAD_REQUEST,
    )
