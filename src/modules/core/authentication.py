"""Auth0 bearer tokens for DRF.

Customers and agents sign in through Auth0; staff tooling and the test
suite use SimpleJWT. This authenticator only claims tokens whose ``iss``
is the configured tenant and returns ``None`` for anything else, so DRF
moves on to the next class in ``DEFAULT_AUTHENTICATION_CLASSES``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

import jwt
import structlog
from decouple import config
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Auth0Tenant:
    domain: str = ""
    audience: str = ""
    algorithm: str = "RS256"
    jwks_lifespan: int = field(default=300, compare=False)

    @property
    def enabled(self) -> bool:
        return bool(self.domain and self.audience)

    @property
    def issuer(self) -> str:
        return f"https://{self.domain}/"

    @cached_property
    def jwks(self) -> jwt.PyJWKClient:
        # Keys stay cached for jwks_lifespan seconds between fetches
        return jwt.PyJWKClient(
            f"{self.issuer}.well-known/jwks.json",
            cache_jwk_set=True,
            lifespan=self.jwks_lifespan,
        )

    def verify(self, token: str) -> dict[str, Any]:
        key = self.jwks.get_signing_key_from_jwt(token).key
        return jwt.decode(
            token,
            key,
            algorithms=[self.algorithm],
            audience=self.audience,
            issuer=self.issuer,
        )


TENANT = Auth0Tenant(
    domain=config("AUTH0_DOMAIN", default=""),
    audience=config("AUTH0_AUDIENCE", default=""),
    algorithm=config("AUTH0_ALGORITHM", default="RS256"),
)


class Auth0User:
    """``request.user`` for an Auth0 caller; there is no local ``User`` row."""

    is_authenticated = True
    is_active = True
    is_staff = False
    is_superuser = False

    def __init__(self, claims: dict[str, Any]) -> None:
        self.payload = claims
        self.sub: str = claims.get("sub", "")

    @property
    def pk(self) -> str:
        return self.sub

    def __str__(self) -> str:
        return self.sub


def _unverified_issuer(token: str) -> str | None:
    try:
        return jwt.decode(token, options={"verify_signature": False}).get("iss")
    except jwt.PyJWTError:
        return None


class Auth0JSONWebTokenAuthentication(BaseAuthentication):
    keyword = "Bearer"
    tenant: Auth0Tenant | None = None

    def get_tenant(self) -> Auth0Tenant:
        return self.tenant or TENANT

    def authenticate(self, request):
        tenant = self.get_tenant()
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header or not tenant.enabled:
            return None

        scheme, _, token = header.partition(" ")
        if scheme.lower() != self.keyword.lower() or not token or " " in token.strip():
            raise AuthenticationFailed("Invalid Authorization header format.")
        token = token.strip()
        if _unverified_issuer(token) != tenant.issuer:
            return None

        try:
            claims = tenant.verify(token)
        except jwt.PyJWTError as exc:
            logger.warning("auth0.token_rejected", error=str(exc))
            raise AuthenticationFailed(f"Token validation failed: {exc}") from exc

        user = Auth0User(claims)
        logger.info("auth0.authenticated", sub=user.sub)
        return user, token

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
