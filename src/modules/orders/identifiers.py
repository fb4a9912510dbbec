"""Sequential, human-readable order identifiers.

Identifiers look like ``APR000042``: a fixed prefix plus a zero-padded
sequence.  The next value is derived from the highest identifier already
stored, so two concurrent callers can compute the same candidate.  The
primary-key constraint on ``orders.id`` arbitrates: the loser's insert
raises ``IntegrityError`` inside its savepoint and it retries with a fresh
read.  Gaps are possible, duplicates are not.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import structlog
from django.db import IntegrityError, transaction
from django.db.models.functions import Length

from modules.orders.constants import (
    ORDER_ID_MAX_RETRIES,
    ORDER_ID_PREFIX,
    ORDER_ID_WIDTH,
)
from modules.orders.exceptions import ExhaustedRetriesError
from modules.orders.models import Order

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class OrderIdGenerator:
    def __init__(
        self,
        prefix: str = ORDER_ID_PREFIX,
        width: int = ORDER_ID_WIDTH,
        max_retries: int = ORDER_ID_MAX_RETRIES,
    ) -> None:
        self.prefix = prefix
        self.width = width
        self.max_retries = max_retries

    def format(self, sequence: int) -> str:
        return f"{self.prefix}{sequence:0{self.width}d}"

    def parse(self, order_id: Optional[str]) -> int:
        """Return the numeric suffix of *order_id*; 0 when absent or malformed."""
        if not order_id or not order_id.startswith(self.prefix):
            return 0
        suffix = order_id[len(self.prefix) :]
        return int(suffix) if suffix.isdigit() else 0

    def current_max(self) -> Optional[str]:
        """Highest issued identifier, ordering by length first.

        Plain string ordering would put ``APR1000000`` before ``APR999999``
        once the sequence outgrows the padding.
        """
        return (
            Order.objects.filter(id__startswith=self.prefix)
            .annotate(id_length=Length("id"))
            .order_by("-id_length", "-id")
            .values_list("id", flat=True)
            .first()
        )

    def next_id(self) -> str:
        return self.format(self.parse(self.current_max()) + 1)

    def issue(self, insert: Callable[[str], T]) -> T:
        """Run *insert* with fresh candidates until one is accepted.

        *insert* must INSERT the row keyed by the candidate (``force_insert``;
        a plain ``save()`` on an existing PK would silently UPDATE it).  It
        runs inside a savepoint so a collision leaves any enclosing
        transaction usable.

        Raises:
            ExhaustedRetriesError: every attempt collided.
        """
        for attempt in range(1, self.max_retries + 1):
            candidate = self.next_id()
            try:
                with transaction.atomic():
                    return insert(candidate)
            except IntegrityError:
                logger.warning(
                    "order_id.collision",
                    candidate=candidate,
                    attempt=attempt,
                    max_retries=self.max_retries,
                )
        logger.error("order_id.exhausted", attempts=self.max_retries)
        raise ExhaustedRetriesError(self.max_retries)
