"""Admin content management: programs, milestones, tasks, assignments."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_admin
from skilltrack.auth.schemas import OkResponse
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page
from skilltrack.programs import service
from skilltrack.programs.builder import create_program_with_structure
from skilltrack.programs.schemas import (
    AssignLearnerRequest,
    AssignMentorRequest,
    CreateMilestoneRequest,
    CreateProgramRequest,
    CreateProgramWithStructureRequest,
    CreateTaskRequest,
    MilestoneEnvelope,
    MilestoneResponse,
    ProgramEnvelope,
    ProgramResponse,
    TaskEnvelope,
    TaskResponse,
)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/programs")
async def list_programs(
    page: Page = Depends(get_page),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return page.wrap(await service.list_programs(db, page))


@router.get("/programs/{program_id}")
async def get_program(
    program_id: UUID,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Program with its mentor, learners and milestones."""
    return await service.get_program_detail(db, str(program_id))


@router.post("/programs", response_model=ProgramEnvelope, status_code=201)
async def create_program(
    body: CreateProgramRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ProgramEnvelope:
    program = await service.create_program(
        db, admin.sub, title=body.title, description=body.description, mentor_id=str(body.mentor_id)
    )
    return ProgramEnvelope(program=ProgramResponse.model_validate(program))


@router.post("/programs/with-structure", response_model=ProgramEnvelope, status_code=201)
async def create_program_tree(
    body: CreateProgramWithStructureRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ProgramEnvelope:
    """Create a program with its modules, chapters and tasks in one transaction."""
    program = await create_program_with_structure(
        db,
        admin.sub,
        mentor_id=str(body.mentor_id),
        title=body.title,
        description=body.description,
        modules=body.modules,
    )
    return ProgramEnvelope(program=ProgramResponse.model_validate(program))


@router.post("/programs/{program_id}/milestones", response_model=MilestoneEnvelope, status_code=201)
async def create_milestone(
    program_id: UUID,
    body: CreateMilestoneRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MilestoneEnvelope:
    milestone = await service.create_milestone(db, admin.sub, str(program_id), body.title, body.sort_order)
    return MilestoneEnvelope(milestone=MilestoneResponse.model_validate(milestone))


@router.post("/programs/{program_id}/tasks", response_model=TaskEnvelope, status_code=201)
async def create_task(
    program_id: UUID,
    body: CreateTaskRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> TaskEnvelope:
    task = await service.create_task(
        db,
        admin.sub,
        str(program_id),
        title=body.title,
        description=body.description,
        deadline_at=body.deadline_at,
        resource_links=body.links(),
        milestone_id=str(body.milestone_id) if body.milestone_id else None,
    )
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.post("/programs/{program_id}/assign-learner", response_model=OkResponse)
async def assign_learner(
    program_id: UUID,
    body: AssignLearnerRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> OkResponse:
    """Add a learner to a program. Repeating it is harmless."""
    await service.assign_learner(db, admin.sub, str(program_id), str(body.learner_id))
    return OkResponse()


@router.post("/programs/{program_id}/assign-mentor", response_model=OkResponse)
async def assign_mentor(
    program_id: UUID,
    body: AssignMentorRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> OkResponse:
    await service.assign_mentor(db, admin.sub, str(program_id), str(body.mentor_id))
    return OkResponse()
