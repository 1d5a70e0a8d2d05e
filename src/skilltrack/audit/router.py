"""Audit log listing for admins."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.audit.service import list_audit_logs
from skilltrack.auth.dependencies import Principal, require_admin
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page

router = APIRouter(prefix="/admin/audit-logs", tags=["Admin"])


@router.get("")
async def audit_logs(
    actor_user_id: UUID | None = Query(None),
    page: Page = Depends(get_page),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Newest entries first; filter by actor with ``actor_user_id``."""
    items = await list_audit_logs(db, page, actor_user_id=str(actor_user_id) if actor_user_id else None)
    return page.wrap(items)
