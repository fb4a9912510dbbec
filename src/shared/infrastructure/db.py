"""Persistence helpers shared by the service layers."""

from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar, cast

import structlog
from django.db import InterfaceError, OperationalError

from shared.domain.exceptions import DependencyError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def translate_store_errors(func: F) -> F:
    """Convert driver-level connectivity failures into ``DependencyError``.

    Applied outside ``transaction.atomic`` so failures raised on commit are
    translated as well.  No retry is attempted.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error(
                "store.unavailable",
                operation=func.__qualname__,
                error=str(exc),
            )
            raise DependencyError(f"Data store unavailable: {exc}") from exc

    return cast(F, wrapper)
