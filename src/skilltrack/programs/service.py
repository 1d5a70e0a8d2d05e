"""Content hierarchy: programs, milestones, tasks and learner membership.

Access rules:
- learners see programs they are assigned to (403 otherwise)
- mentors see programs they own
- admins see everything; a missing program is 404

Every privileged write appends one audit row in the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import case, distinct, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.audit.service import record
from skilltrack.auth.service import user_has_role
from skilltrack.database import transaction
from skilltrack.db.models import Milestone, Program, ProgramLearner, Submission, Task, User
from skilltrack.errors import Forbidden, NotFound, ValidationError
from skilltrack.pagination import Page

logger = structlog.get_logger()

NOT_SUBMITTED = "not_submitted"


def _count_status(status: str) -> Any:  # noqa: ANN401
    return func.count(case((Submission.status == status, 1)))


def _completion_percentage(approved: int, total: int) -> int:
    return 0 if total == 0 else round(approved / total * 100)


# ---------------------------------------------------------------------------
# Access checks
# ---------------------------------------------------------------------------


async def get_program(db: AsyncSession, program_id: str) -> Program | None:
    result = await db.execute(select(Program).where(Program.id == program_id))
    return result.scalar_one_or_none()


async def require_program(db: AsyncSession, program_id: str) -> Program:
    program = await get_program(db, program_id)
    if program is None:
        raise NotFound("Program not found")
    return program


async def is_assigned(db: AsyncSession, program_id: str, learner_id: str) -> bool:
    result = await db.execute(
        select(ProgramLearner.program_id).where(
            ProgramLearner.program_id == program_id,
            ProgramLearner.learner_id == learner_id,
        )
    )
    return result.first() is not None


async def require_assigned(db: AsyncSession, program_id: str, learner_id: str) -> None:
    """Raise Forbidden unless the learner is assigned to the program."""
    if not await is_assigned(db, program_id, learner_id):
        raise Forbidden()


async def require_mentor_user(db: AsyncSession, mentor_id: str) -> None:
    if not await user_has_role(db, mentor_id, "mentor"):
        raise ValidationError("Invalid mentorId")


# ---------------------------------------------------------------------------
# Learner reads
# ---------------------------------------------------------------------------


async def learner_dashboard(db: AsyncSession, learner_id: str) -> dict[str, Any]:
    programs = await db.execute(
        select(Program.id, Program.title, Program.description)
        .join(ProgramLearner, ProgramLearner.program_id == Program.id)
        .where(ProgramLearner.learner_id == learner_id)
        .order_by(Program.created_at.desc())
    )

    stats = await db.execute(
        select(
            func.count(Task.id).label("total"),
            _count_status("submitted").label("pending"),
            _count_status("approved").label("approved"),
        )
        .select_from(Task)
        .join(
            ProgramLearner,
            (ProgramLearner.program_id == Task.program_id) & (ProgramLearner.learner_id == learner_id),
        )
        .outerjoin(
            Submission,
            (Submission.task_id == Task.id) & (Submission.learner_id == learner_id),
        )
    )
    row = stats.one()
    return {
        "active_programs": [dict(r._mapping) for r in programs.all()],
        "pending_tasks": row.pending,
        "approved_tasks": row.approved,
        "completion_percentage": _completion_percentage(row.approved, row.total),
    }


async def list_learner_programs(db: AsyncSession, learner_id: str, page: Page) -> list[dict[str, Any]]:
    result = await db.execute(
        select(Program.id, Program.title, Program.description, Program.mentor_id)
        .join(ProgramLearner, ProgramLearner.program_id == Program.id)
        .where(ProgramLearner.learner_id == learner_id)
        .order_by(Program.created_at.desc())
        .limit(page.limit)
        .offset(page.offset)
    )
    return [dict(r._mapping) for r in result.all()]


async def list_milestones(db: AsyncSession, program_id: str) -> list[dict[str, Any]]:
    """Ordered by sort_order, ties by creation order."""
    result = await db.execute(
        select(Milestone.id, Milestone.title, Milestone.sort_order)
        .where(Milestone.program_id == program_id)
        .order_by(Milestone.sort_order.asc(), Milestone.created_at.asc())
    )
    return [dict(r._mapping) for r in result.all()]


async def list_learner_milestones(db: AsyncSession, program_id: str, learner_id: str) -> list[dict[str, Any]]:
    await require_assigned(db, program_id, learner_id)
    return await list_milestones(db, program_id)


async def list_learner_tasks(
    db: AsyncSession,
    program_id: str,
    learner_id: str,
    page: Page,
    milestone_id: str | None = None,
) -> list[dict[str, Any]]:
    """Tasks of an assigned program with the learner's derived submission status."""
    await require_assigned(db, program_id, learner_id)

    stmt = (
        select(
            Task.id,
            Task.milestone_id,
            Task.title,
            Task.deadline_at,
            func.coalesce(Submission.status, NOT_SUBMITTED).label("submission_status"),
            Submission.score,
        )
        .outerjoin(
            Submission,
            (Submission.task_id == Task.id) & (Submission.learner_id == learner_id),
        )
        .where(Task.program_id == program_id)
        .order_by(Task.deadline_at.asc())
        .limit(page.limit)
        .offset(page.offset)
    )
    if milestone_id:
        stmt = stmt.where(Task.milestone_id == milestone_id)

    result = await db.execute(stmt)
    return [dict(r._mapping) for r in result.all()]


async def learner_progress(db: AsyncSession, program_id: str, learner_id: str) -> dict[str, Any]:
    await require_assigned(db, program_id, learner_id)

    result = await db.execute(
        select(
            func.count(Task.id).label("total_tasks"),
            _count_status("submitted").label("pending"),
            _count_status("approved").label("approved"),
            _count_status("rejected").label("rejected"),
        )
        .select_from(Task)
        .outerjoin(
            Submission,
            (Submission.task_id == Task.id) & (Submission.learner_id == learner_id),
        )
        .where(Task.program_id == program_id)
    )
    row = result.one()
    return {
        "program_id": program_id,
        "total_tasks": row.total_tasks,
        "pending": row.pending,
        "approved": row.approved,
        "rejected": row.rejected,
        "completion_percentage": _completion_percentage(row.approved, row.total_tasks),
    }


async def get_learner_task(db: AsyncSession, task_id: str, learner_id: str) -> dict[str, Any]:
    """Task detail plus the learner's own submission.

    404 covers both "no such task" and "not assigned".
    """
    result = await db.execute(
        select(
            Task.id,
            Task.program_id,
            Task.milestone_id,
            Task.title,
            Task.description,
            Task.deadline_at,
            Task.resource_links,
            Submission.id.label("submission_id"),
            Submission.link.label("submission_link"),
            Submission.notes.label("submission_notes"),
            func.coalesce(Submission.status, NOT_SUBMITTED).label("submission_status"),
            Submission.feedback_text,
            Submission.score,
        )
        .join(
            ProgramLearner,
            (ProgramLearner.program_id == Task.program_id) & (ProgramLearner.learner_id == learner_id),
        )
        .outerjoin(
            Submission,
            (Submission.task_id == Task.id) & (Submission.learner_id == learner_id),
        )
        .where(Task.id == task_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("Task not found")
    return dict(row._mapping)


# ---------------------------------------------------------------------------
# Mentor reads
# ---------------------------------------------------------------------------


def _mentor_program_summary(mentor_id: str) -> Any:  # noqa: ANN401
    return (
        select(
            Program.id,
            Program.title,
            Program.description,
            Program.created_at,
            func.count(distinct(ProgramLearner.learner_id)).label("learner_count"),
            func.count(distinct(Task.id)).label("task_count"),
        )
        .outerjoin(ProgramLearner, ProgramLearner.program_id == Program.id)
        .outerjoin(Task, Task.program_id == Program.id)
        .where(Program.mentor_id == mentor_id)
        .group_by(Program.id)
        .order_by(Program.created_at.desc())
    )


async def list_mentor_programs(db: AsyncSession, mentor_id: str, page: Page) -> list[dict[str, Any]]:
    result = await db.execute(_mentor_program_summary(mentor_id).limit(page.limit).offset(page.offset))
    return [dict(r._mapping) for r in result.all()]


async def mentor_program_overview(db: AsyncSession, program_id: str, mentor_id: str) -> dict[str, Any]:
    """Learners and per-task submission counts. Not-owned reads as 404."""
    owned = await db.execute(
        select(Program.id).where(Program.id == program_id, Program.mentor_id == mentor_id)
    )
    if owned.first() is None:
        raise NotFound("Program not found")

    learners = await db.execute(
        select(User.id, User.full_name, User.email)
        .join(ProgramLearner, ProgramLearner.learner_id == User.id)
        .where(ProgramLearner.program_id == program_id)
        .order_by(User.full_name.asc())
    )
    tasks = await db.execute(
        select(
            Task.id,
            Task.title,
            Task.deadline_at,
            func.count(Submission.id).label("submissions"),
            _count_status("submitted").label("pending"),
            _count_status("approved").label("approved"),
            _count_status("rejected").label("rejected"),
        )
        .outerjoin(Submission, Submission.task_id == Task.id)
        .where(Task.program_id == program_id)
        .group_by(Task.id)
        .order_by(Task.deadline_at.asc())
    )
    return {
        "program_id": program_id,
        "learners": [dict(r._mapping) for r in learners.all()],
        "tasks": [dict(r._mapping) for r in tasks.all()],
    }


async def mentor_dashboard(db: AsyncSession, mentor_id: str) -> dict[str, Any]:
    learners = await db.execute(
        select(User.id, User.full_name, User.email)
        .join(ProgramLearner, ProgramLearner.learner_id == User.id)
        .join(Program, Program.id == ProgramLearner.program_id)
        .where(Program.mentor_id == mentor_id)
        .distinct()
        .order_by(User.full_name.asc())
    )
    pending = await db.execute(
        select(func.count(Submission.id))
        .join(Task, Task.id == Submission.task_id)
        .join(Program, Program.id == Task.program_id)
        .where(Program.mentor_id == mentor_id, Submission.status == "submitted")
    )
    programs = await db.execute(_mentor_program_summary(mentor_id))
    return {
        "assigned_learners": [dict(r._mapping) for r in learners.all()],
        "pending_reviews": pending.scalar_one(),
        "programs": [
            {"id": r.id, "title": r.title, "learner_count": r.learner_count, "task_count": r.task_count}
            for r in programs.all()
        ],
    }


# ---------------------------------------------------------------------------
# Admin reads
# ---------------------------------------------------------------------------


def _program_with_mentor() -> Any:  # noqa: ANN401
    return select(
        Program.id,
        Program.title,
        Program.description,
        Program.mentor_id,
        User.full_name.label("mentor_name"),
        Program.created_at,
    ).join(User, User.id == Program.mentor_id)


async def list_programs(db: AsyncSession, page: Page) -> list[dict[str, Any]]:
    result = await db.execute(
        _program_with_mentor().order_by(Program.created_at.desc()).limit(page.limit).offset(page.offset)
    )
    return [dict(r._mapping) for r in result.all()]


async def get_program_detail(db: AsyncSession, program_id: str) -> dict[str, Any]:
    result = await db.execute(_program_with_mentor().where(Program.id == program_id))
    program = result.first()
    if program is None:
        raise NotFound("Program not found")

    learners = await db.execute(
        select(User.id, User.full_name, User.email)
        .join(ProgramLearner, ProgramLearner.learner_id == User.id)
        .where(ProgramLearner.program_id == program_id)
        .order_by(User.full_name.asc())
    )
    return {
        "program": dict(program._mapping),
        "learners": [dict(r._mapping) for r in learners.all()],
        "milestones": await list_milestones(db, program_id),
    }


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------


async def create_program(
    db: AsyncSession,
    actor_id: str,
    title: str,
    description: str,
    mentor_id: str,
) -> Program:
    await require_mentor_user(db, mentor_id)

    async with transaction(db):
        program = Program(title=title, description=description, mentor_id=mentor_id)
        db.add(program)
        await db.flush()
        await record(db, actor_id, "admin.create_program", "program", program.id, {"mentorId": mentor_id})

    logger.info("program_created", program_id=program.id, mentor_id=mentor_id)
    return program


async def create_milestone(
    db: AsyncSession,
    actor_id: str,
    program_id: str,
    title: str,
    sort_order: int,
) -> Milestone:
    await require_program(db, program_id)

    async with transaction(db):
        milestone = Milestone(program_id=program_id, title=title, sort_order=sort_order)
        db.add(milestone)
        await db.flush()
        await record(db, actor_id, "admin.create_milestone", "milestone", milestone.id, {"programId": program_id})
    return milestone


async def create_task(
    db: AsyncSession,
    actor_id: str,
    program_id: str,
    title: str,
    description: str,
    deadline_at: datetime,
    resource_links: list[str],
    milestone_id: str | None = None,
) -> Task:
    """Create a task; ``milestone_id`` must belong to the same program."""
    await require_program(db, program_id)
    if milestone_id:
        found = await db.execute(
            select(Milestone.id).where(Milestone.id == milestone_id, Milestone.program_id == program_id)
        )
        if found.first() is None:
            raise ValidationError("Invalid milestoneId for program")

    async with transaction(db):
        task = Task(
            program_id=program_id,
            milestone_id=milestone_id,
            title=title,
            description=description,
            deadline_at=deadline_at,
            resource_links=list(resource_links),
        )
        db.add(task)
        await db.flush()
        await record(
            db,
            actor_id,
            "admin.create_task",
            "task",
            task.id,
            {"programId": program_id, "milestoneId": milestone_id},
        )
    return task


def _insert_ignoring_duplicates(db: AsyncSession) -> Any:  # noqa: ANN401
    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    return insert(ProgramLearner).on_conflict_do_nothing()


async def assign_learner(db: AsyncSession, actor_id: str, program_id: str, learner_id: str) -> None:
    """Idempotent: assigning an existing member is a no-op but still audited."""
    if not await user_has_role(db, learner_id, "learner"):
        raise ValidationError("Invalid learnerId")
    await require_program(db, program_id)

    async with transaction(db):
        await db.execute(_insert_ignoring_duplicates(db).values(program_id=program_id, learner_id=learner_id))
        await record(db, actor_id, "admin.assign_learner", "program", program_id, {"learnerId": learner_id})
    logger.info("learner_assigned", program_id=program_id, learner_id=learner_id)


async def assign_mentor(db: AsyncSession, actor_id: str, program_id: str, mentor_id: str) -> None:
    await require_mentor_user(db, mentor_id)

    async with transaction(db):
        program = await get_program(db, program_id)
        if program is None:
            raise NotFound("Program not found")
        program.mentor_id = mentor_id
        await db.flush()
        await record(db, actor_id, "admin.assign_mentor", "program", program_id, {"mentorId": mentor_id})
    logger.info("mentor_assigned", program_id=program_id, mentor_id=mentor_id)
