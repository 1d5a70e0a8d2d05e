"""Authentication endpoints under /auth."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.delivery import ResetLinkDelivery, build_reset_url, get_reset_delivery
from skilltrack.auth.dependencies import Principal, require_auth
from skilltrack.auth.jwt import create_access_token
from skilltrack.auth.schemas import (
    LoginRequest,
    MeResponse,
    OkResponse,
    RequestPasswordResetRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
    UserResponse,
)
from skilltrack.auth.service import (
    authenticate,
    create_reset_token,
    get_user_by_email,
    get_user_by_id,
    reset_password,
    signup,
)
from skilltrack.config import Settings, get_app_settings
from skilltrack.database import get_session
from skilltrack.db.models import User
from skilltrack.errors import NotFound

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(user: User, settings: Settings) -> TokenResponse:
    return TokenResponse(
        token=create_access_token(user.id, user.role, user.email, settings),
        expires_in=settings.jwt_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup_endpoint(
    body: SignupRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    """Self-service learner signup."""
    user = await signup(db, full_name=body.full_name, email=body.email, password=body.password)
    return _token_response(user, settings)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> TokenResponse:
    """Login with email + password."""
    user = await authenticate(db, body.email, body.password)
    return _token_response(user, settings)


@router.get("/me", response_model=MeResponse)
async def me(
    principal: Principal = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
) -> MeResponse:
    """Current user, read from the store."""
    user = await get_user_by_id(db, principal.sub)
    if user is None:
        raise NotFound("User not found")
    return MeResponse(user=UserResponse.model_validate(user))


@router.post("/request-password-reset", response_model=OkResponse)
async def request_password_reset(
    body: RequestPasswordResetRequest,
    db: AsyncSession = Depends(get_session),
    delivery: ResetLinkDelivery = Depends(get_reset_delivery),
    settings: Settings = Depends(get_app_settings),
) -> OkResponse:
    """Issue a reset link if the email exists. Always returns ok."""
    user = await get_user_by_email(db, body.email)
    if user is None:
        return OkResponse()

    raw_token = await create_reset_token(db, user.id, settings.reset_token_ttl_minutes)
    try:
        await delivery.send_reset_link(user.email, user.full_name, build_reset_url(raw_token, settings))
    except Exception:
        logger.exception("password_reset_delivery_failed", user_id=user.id)

    return OkResponse()


@router.post("/reset-password", response_model=OkResponse)
async def reset_password_endpoint(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> OkResponse:
    """Set a new password with a valid reset token."""
    await reset_password(db, body.token, body.new_password)
    return OkResponse()
