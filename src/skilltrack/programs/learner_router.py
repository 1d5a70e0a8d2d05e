"""Learner content endpoints: dashboard, assigned programs, milestones, tasks."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_learner
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page
from skilltrack.programs import service

router = APIRouter(prefix="/learner", tags=["Learner"])


@router.get("/dashboard")
async def dashboard(
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Active programs and task completion summary."""
    return await service.learner_dashboard(db, principal.sub)


@router.get("/programs")
async def programs(
    page: Page = Depends(get_page),
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return page.wrap(await service.list_learner_programs(db, principal.sub, page))


@router.get("/programs/{program_id}/milestones")
async def milestones(
    program_id: UUID,
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"items": await service.list_learner_milestones(db, str(program_id), principal.sub)}


@router.get("/programs/{program_id}/tasks")
async def tasks(
    program_id: UUID,
    milestone_id: UUID | None = Query(None),
    page: Page = Depends(get_page),
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Tasks of an assigned program, earliest deadline first."""
    items = await service.list_learner_tasks(
        db,
        str(program_id),
        principal.sub,
        page,
        milestone_id=str(milestone_id) if milestone_id else None,
    )
    return page.wrap(items)


@router.get("/programs/{program_id}/progress")
async def progress(
    program_id: UUID,
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await service.learner_progress(db, str(program_id), principal.sub)


@router.get("/tasks/{task_id}")
async def task_detail(
    task_id: UUID,
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"task": await service.get_learner_task(db, str(task_id), principal.sub)}
