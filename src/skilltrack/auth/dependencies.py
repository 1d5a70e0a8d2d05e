"""FastAPI authentication dependencies."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from skilltrack.auth.jwt import verify_token
from skilltrack.config import Settings, get_app_settings
from skilltrack.errors import Forbidden, Unauthenticated

# auto_error=False so a missing header becomes our 401 envelope, not Starlette's 403.
_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Identity carried by a verified token."""

    sub: str
    role: str
    email: str


async def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    """
    Verify the bearer token and return the principal it encodes.

    The store is not consulted: role and email come from the token.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token")
    try:
        payload = verify_token(credentials.credentials, settings)
    except jwt.InvalidTokenError as e:
        raise Unauthenticated("Invalid or expired token") from e

    role = payload.get("role")
    if not role:
        raise Unauthenticated()
    return Principal(sub=str(payload["sub"]), role=role, email=payload.get("email", ""))


def check_role(principal: Principal, allowed: tuple[str, ...]) -> None:
    if principal.role not in allowed:
        raise Forbidden()


def require_role(*allowed: str) -> Callable[..., Awaitable[Principal]]:
    """Dependency factory: authenticated principal whose role is in ``allowed``."""

    async def _dependency(principal: Principal = Depends(require_auth)) -> Principal:
        check_role(principal, allowed)
        return principal

    return _dependency


require_learner = require_role("learner")
require_mentor = require_role("mentor")
require_admin = require_role("admin")
