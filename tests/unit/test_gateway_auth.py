"""Unit tests for JWT verification and the auth dependencies."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from config.settings import settings
from src.mp_common.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidWebhookSecretError,
)
from src.mp_gateway.auth.dependencies import (
    Actor,
    get_current_actor,
    require_admin,
    verify_webhook_secret,
)
from src.mp_gateway.auth.jwt_handler import decode_token


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _access_token(user_id: str, role: str = "buyer", expires_in: int = 1800) -> str:
    """Sign the claim shape the auth service issues."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


class TestJwt:
    def test_round_trip(self) -> None:
        payload = decode_token(_access_token("u1", role="vendor"))
        assert payload["sub"] == "u1"
        assert payload["role"] == "vendor"

    def test_wrong_secret(self) -> None:
        token = jwt.encode({"sub": "u1"}, "other-secret", algorithm="HS256")
        with pytest.raises(InvalidCredentialsError):
            decode_token(token)

    def test_refresh_token_rejected(self) -> None:
        token = jwt.encode(
            {"sub": "u1", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256"
        )
        with pytest.raises(InvalidCredentialsError):
            decode_token(token)

    def test_garbage(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_token("not.a.jwt")

    def test_expired_token_rejected(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            decode_token(_access_token("u1", expires_in=-60))


class TestActor:
    async def test_resolves_role(self) -> None:
        actor = await get_current_actor(_bearer(_access_token("a1", role="admin")))
        assert actor == Actor(id="a1", role="admin")
        assert actor.is_admin

    async def test_role_defaults_to_buyer(self) -> None:
        token = jwt.encode({"sub": "b1"}, settings.JWT_SECRET, algorithm="HS256")
        actor = await get_current_actor(_bearer(token))
        assert actor.role == "buyer"
        assert not actor.is_admin

    async def test_missing_credentials(self) -> None:
        with pytest.raises(InvalidCredentialsError):
            await get_current_actor(None)

    async def test_missing_subject(self) -> None:
        token = jwt.encode({"role": "admin"}, settings.JWT_SECRET, algorithm="HS256")
        with pytest.raises(InvalidCredentialsError):
            await get_current_actor(_bearer(token))

    async def test_require_admin(self) -> None:
        assert (await require_admin(Actor("s1", "super_admin"))).id == "s1"
        with pytest.raises(ForbiddenError):
            await require_admin(Actor("v1", "vendor"))


class TestWebhookSecret:
    async def test_matching_secret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")
        assert await verify_webhook_secret("s3cret") is None

    @pytest.mark.parametrize("header", [None, "", "wrong"])
    async def test_rejected(self, monkeypatch: pytest.MonkeyPatch, header) -> None:
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "s3cret")
        with pytest.raises(InvalidWebhookSecretError):
            await verify_webhook_secret(header)

    async def test_unconfigured_secret_rejects_everything(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "WEBHOOK_SECRET", "")
        with pytest.raises(InvalidWebhookSecretError):
            await verify_webhook_secret("")
