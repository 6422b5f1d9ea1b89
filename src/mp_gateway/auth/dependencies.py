"""FastAPI dependencies: actor resolution and webhook authentication.

Usage in any protected router:
    from src.mp_gateway.auth.dependencies import Actor, get_current_actor

    @router.get("/protected")
    async def protected(actor: Actor = Depends(get_current_actor)):
        ...
"""

import hmac
from dataclasses import dataclass

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.mp_common.enums import ActorRole
from src.mp_common.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidWebhookSecretError,
)
from src.mp_gateway.auth.jwt_handler import decode_token

_bearer = HTTPBearer(auto_error=False)

_ADMIN_ROLES = {ActorRole.ADMIN.value, ActorRole.SUPER_ADMIN.value}


@dataclass(frozen=True)
class Actor:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in _ADMIN_ROLES


SYSTEM_ACTOR = Actor(id="system", role=ActorRole.SYSTEM.value)


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Actor:
    """Resolve the Bearer token into an Actor. Raises 401 if missing or invalid."""
    if credentials is None:
        raise InvalidCredentialsError()
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidCredentialsError()
    return Actor(id=str(user_id), role=str(payload.get("role", ActorRole.BUYER.value)))


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin role required")
    return actor


async def verify_webhook_secret(
    x_webhook_secret: str | None = Header(default=None),
) -> None:
    """Shared-secret check for payment and carrier webhooks (constant-time compare)."""
    expected = settings.WEBHOOK_SECRET
    if not expected or x_webhook_secret is None:
        raise InvalidWebhookSecretError()
    if not hmac.compare_digest(x_webhook_secret.encode(), expected.encode()):
        raise InvalidWebhookSecretError()
