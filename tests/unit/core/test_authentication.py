"""Unit tests for the Auth0 bearer authenticator (no network access)."""

from __future__ import annotations

from unittest.mock import patch

import jwt
import pytest
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from modules.core.authentication import (
    Auth0JSONWebTokenAuthentication,
    Auth0Tenant,
    Auth0User,
)

pytestmark = pytest.mark.unit

TENANT = Auth0Tenant(domain="grocery-test.eu.auth0.com", audience="grocery-api")
SIGNING_KEY = "unit-test-signing-key-" * 2


def _token(issuer: str = TENANT.issuer, sub: str = "auth0|rider-7") -> str:
    return jwt.encode({"iss": issuer, "sub": sub}, SIGNING_KEY, algorithm="HS256")


def _request(header: str | None):
    extra = {"HTTP_AUTHORIZATION": header} if header is not None else {}
    return APIRequestFactory().get("/api/v1/me", **extra)


@pytest.fixture()
def authenticator():
    auth = Auth0JSONWebTokenAuthentication()
    auth.tenant = TENANT
    return auth


def test_tenant_issuer():
    assert TENANT.issuer == "https://grocery-test.eu.auth0.com/"
    assert TENANT.enabled
    assert not Auth0Tenant(domain="grocery-test.eu.auth0.com").enabled


def test_skips_when_tenant_not_configured():
    auth = Auth0JSONWebTokenAuthentication()
    auth.tenant = Auth0Tenant()
    assert auth.authenticate(_request(f"Bearer {_token()}")) is None


def test_skips_without_header(authenticator):
    assert authenticator.authenticate(_request(None)) is None


def test_leaves_foreign_issuer_to_next_authenticator(authenticator):
    token = _token(issuer="https://someone-else.example/")
    assert authenticator.authenticate(_request(f"Bearer {token}")) is None


@pytest.mark.parametrize("header", ["Bearer", "Token abc", "Bearer a b"])
def test_malformed_header_is_rejected(authenticator, header):
    with pytest.raises(AuthenticationFailed):
        authenticator.authenticate(_request(header))


def test_verified_token_yields_auth0_user(authenticator):
    token = _token()
    claims = {"sub": "auth0|rider-7", "https://grocery.app/role": "delivery_agent"}

    with patch.object(Auth0Tenant, "verify", return_value=claims) as verify:
        user, raw = authenticator.authenticate(_request(f"Bearer {token}"))

    verify.assert_called_once_with(token)
    assert isinstance(user, Auth0User)
    assert user.pk == "auth0|rider-7"
    assert user.payload is claims
    assert raw == token


def test_failed_verification_is_401(authenticator):
    with patch.object(
        Auth0Tenant, "verify", side_effect=jwt.InvalidAudienceError("bad aud")
    ):
        with pytest.raises(AuthenticationFailed, match="bad aud"):
            authenticator.authenticate(_request(f"Bearer {_token()}"))


def test_challenge_header(authenticator):
    assert authenticator.authenticate_header(_request(None)) == 'Bearer realm="api"'
