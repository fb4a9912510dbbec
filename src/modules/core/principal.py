"""Acting principal resolved from the authentication collaborator.

The lifecycle services never look at ``request.user`` directly; views
resolve a ``Principal`` once and pass it down explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from decouple import config
from django.db import models

AUTH0_ROLE_CLAIM = config("AUTH0_ROLE_CLAIM", default="https://grocery.app/role")

DELIVERY_AGENT_GROUP = "delivery_agent"


class Role(models.TextChoices):
    ADMIN = "admin", "Admin"
    CUSTOMER = "customer", "Customer"
    DELIVERY_AGENT = "delivery_agent", "Delivery agent"


@dataclass(frozen=True)
class Principal:
    """Identity and role of whoever performs a mutating call."""

    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @property
    def is_agent(self) -> bool:
        return self.role == Role.DELIVERY_AGENT


def principal_from_user(user: Any) -> Principal:
    """Map an authenticated user object to a ``Principal``.

    - Auth0 users (``sub`` attribute) take the role from the configured claim.
    - Django users: staff/superusers are admins, members of the
      ``delivery_agent`` group are agents, everybody else is a customer.
    """
    payload = getattr(user, "payload", None)
    if payload is not None and hasattr(user, "sub"):
        role = payload.get(AUTH0_ROLE_CLAIM, Role.CUSTOMER)
        if role not in Role.values:
            role = Role.CUSTOMER
        return Principal(id=user.sub, role=role)

    if user.is_staff or user.is_superuser:
        role = Role.ADMIN
    elif user.groups.filter(name=DELIVERY_AGENT_GROUP).exists():
        role = Role.DELIVERY_AGENT
    else:
        role = Role.CUSTOMER
    return Principal(id=str(user.pk), role=role)


def current_principal(request: Any) -> Principal:
    """Resolve the principal behind an authenticated DRF request."""
    return principal_from_user(request.user)
