"""Tests for access tokens and the principal dependency."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from app.auth import (
    Principal,
    create_access_token,
    decode_access_token,
    get_current_principal,
    require_admin,
    require_scope,
)
from app.config import get_settings

settings = get_settings()


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestAccessTokens:
    def test_round_trip(self):
        token = create_access_token(
            "svc-1", email="ops@example.com", role="service", scopes=["webhooks:read"]
        )

        payload = decode_access_token(token)

        assert payload["sub"] == "svc-1"
        assert payload["email"] == "ops@example.com"
        assert payload["role"] == "service"
        assert payload["scopes"] == ["webhooks:read"]

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {
                "sub": "admin-1",
                "role": "admin",
                "type": "access",
                "exp": datetime.now(UTC) - timedelta(minutes=1),
            },
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_access_token(token) is None

    def test_wrong_token_type_rejected(self):
        token = jwt.encode(
            {"sub": "admin-1", "type": "refresh"},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

        assert decode_access_token(token) is None

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "admin-1", "type": "access"}, "other-secret", algorithm="HS256")

        assert decode_access_token(token) is None


class TestPrincipal:
    def test_admin_holds_every_scope(self):
        principal = Principal(subject="a", role="admin")

        assert principal.is_admin
        assert principal.has_scope("webhooks:write")

    def test_service_holds_listed_scopes_only(self):
        principal = Principal(subject="s", role="service", scopes=frozenset({"webhooks:read"}))

        assert principal.has_scope("webhooks:read")
        assert not principal.has_scope("webhooks:write")

    @pytest.mark.asyncio
    async def test_principal_from_token(self):
        token = create_access_token("admin-1", email="admin@example.com")

        principal = await get_current_principal(_credentials(token))

        assert principal == Principal(
            subject="admin-1", role="admin", email="admin@example.com", scopes=frozenset()
        )

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_principal(None)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_require_admin_rejects_users(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(Principal(subject="u", role="user"))

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_require_scope(self):
        dependency = require_scope("webhooks:write")
        service = Principal(subject="s", role="service", scopes=frozenset({"webhooks:write"}))

        assert await dependency(service) is service
        with pytest.raises(HTTPException) as exc_info:
            await dependency(Principal(subject="s", role="service"))

        assert exc_info.value.status_code == 403
