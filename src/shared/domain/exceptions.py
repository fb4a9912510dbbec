"""Cross-module domain errors.

Raised by the Service Layer of every bounded context.  Each error keeps
the offending identifiers as attributes so the API layer can render a
structured response without parsing the message.
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base class for business-rule violations."""

    code = "domain_error"


class IllegalTransitionError(DomainError):
    """A status change is not allowed by the state machine.

    The store is left unchanged whenever this is raised.
    """

    code = "illegal_transition"

    def __init__(
        self,
        entity: str,
        from_status: str,
        to_status: str,
        entity_id: Optional[str] = None,
    ) -> None:
        self.entity = entity
        self.from_status = from_status
        self.to_status = to_status
        self.entity_id = entity_id
        target = f" {entity_id}" if entity_id else ""
        super().__init__(
            f"Cannot transition {entity}{target} from {from_status} to {to_status}."
        )


class ConflictError(DomainError):
    """Optimistic concurrency check failed (stale ``version``)."""

    code = "conflict"

    def __init__(self, entity: str, entity_id: str, expected_version: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity} {entity_id} was modified concurrently "
            f"(expected version {expected_version}). Re-fetch and retry."
        )


class AuthorizationError(DomainError):
    """The acting principal is not allowed to perform the operation."""

    code = "not_authorized"

    def __init__(self, principal_id: str, action: str) -> None:
        self.principal_id = principal_id
        self.action = action
        super().__init__(f"Principal {principal_id} may not {action}.")


class DependencyError(DomainError):
    """The backing store is unreachable or timed out.

    Propagated immediately; the core never retries.
    """

    code = "dependency_unavailable"
