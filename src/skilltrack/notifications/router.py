"""Notification endpoints, open to every authenticated role."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_auth
from skilltrack.auth.schemas import OkResponse
from skilltrack.database import get_session
from skilltrack.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from skilltrack.notifications.service import get_unread_count, list_notifications, mark_as_read
from skilltrack.pagination import Page, get_page

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_user_notifications(
    unread: bool = Query(False),
    page: Page = Depends(get_page),
    principal: Principal = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    """List the caller's notifications (paginated, newest first)."""
    notifications = await list_notifications(db, principal.sub, page, unread_only=unread)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: Principal = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    """Get unread notification count."""
    return UnreadCountResponse(count=await get_unread_count(db, principal.sub))


@router.post("/{notification_id}/read", response_model=OkResponse)
async def mark_notification_read(
    notification_id: UUID,
    principal: Principal = Depends(require_auth),
    db: AsyncSession = Depends(get_session),
) -> OkResponse:
    """Mark a notification read. Unknown or foreign ids are a silent no-op."""
    await mark_as_read(db, principal.sub, str(notification_id))
    return OkResponse()
