"""Mentor content endpoints: owned programs and dashboard."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_mentor
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page
from skilltrack.programs import service

router = APIRouter(prefix="/mentor", tags=["Mentor"])


@router.get("/programs")
async def programs(
    page: Page = Depends(get_page),
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Owned programs with learner and task counts."""
    return page.wrap(await service.list_mentor_programs(db, principal.sub, page))


@router.get("/programs/{program_id}/overview")
async def program_overview(
    program_id: UUID,
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await service.mentor_program_overview(db, str(program_id), principal.sub)


@router.get("/dashboard")
async def dashboard(
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await service.mentor_dashboard(db, principal.sub)
