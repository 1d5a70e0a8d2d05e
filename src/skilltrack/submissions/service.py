"""Submission workflow.

State machine per (task, learner):

    not_submitted (no row) -> submitted -> approved | rejected

A row is created once and never re-created; the unique constraint on
(task_id, learner_id) is what guarantees a single winner under concurrent
submits. Reviews are a single conditional UPDATE scoped to the mentor's
programs, so a non-owning mentor changes nothing and gets a 404.

Notifications are sent after the primary write commits and never fail the
request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.audit.service import record
from skilltrack.database import transaction
from skilltrack.db.models import Program, ProgramLearner, Submission, Task, User
from skilltrack.errors import Conflict, Forbidden, NotFound
from skilltrack.notifications.service import (
    SUBMISSION_REVIEWED,
    SUBMISSION_SUBMITTED,
    enqueue_best_effort,
)
from skilltrack.pagination import Page

logger = structlog.get_logger()

TIMELINE_LIMIT = 100


def _owned_task_ids(mentor_id: str) -> Any:  # noqa: ANN401
    return (
        select(Task.id)
        .join(Program, Program.id == Task.program_id)
        .where(Program.mentor_id == mentor_id)
    )


# ---------------------------------------------------------------------------
# Learner side
# ---------------------------------------------------------------------------


async def submit_task(
    db: AsyncSession,
    learner_id: str,
    task_id: str,
    link: str,
    notes: str = "",
) -> dict[str, Any]:
    """
    Create the learner's submission for a task.

    Raises:
        Forbidden: the learner is not assigned to the task's program (or the task is unknown).
        Conflict: a submission for this (task, learner) already exists.
    """
    access = await db.execute(
        select(Task.id, Program.mentor_id)
        .join(Program, Program.id == Task.program_id)
        .join(
            ProgramLearner,
            (ProgramLearner.program_id == Task.program_id) & (ProgramLearner.learner_id == learner_id),
        )
        .where(Task.id == task_id)
    )
    task = access.first()
    if task is None:
        raise Forbidden()

    existing = await db.execute(
        select(Submission.id).where(Submission.task_id == task_id, Submission.learner_id == learner_id)
    )
    if existing.first() is not None:
        raise Conflict("Already submitted")

    try:
        async with transaction(db):
            submission = Submission(
                task_id=task_id,
                learner_id=learner_id,
                link=link,
                notes=notes,
                status="submitted",
            )
            db.add(submission)
            await db.flush()
            await record(db, learner_id, "learner.submit_task", "submission", submission.id, {"taskId": task_id})
    except IntegrityError as e:
        # Lost the race against a concurrent submit for the same pair.
        raise Conflict("Already submitted") from e

    created = {
        "id": submission.id,
        "status": submission.status,
        "task_id": task_id,
        "learner_id": learner_id,
    }
    logger.info("submission_created", submission_id=submission.id, task_id=task_id, learner_id=learner_id)

    await enqueue_best_effort(
        db,
        task.mentor_id,
        SUBMISSION_SUBMITTED,
        "New submission",
        "A learner submitted a task.",
        {"taskId": task_id, "learnerId": learner_id, "submissionId": created["id"]},
    )
    return created


async def performance_report(db: AsyncSession, learner_id: str) -> dict[str, Any]:
    result = await db.execute(
        select(
            func.count(case((Submission.status == "approved", 1))).label("approved"),
            func.count(case((Submission.status == "rejected", 1))).label("rejected"),
            func.count(case((Submission.status == "submitted", 1))).label("pending"),
            func.avg(Submission.score).label("average_score"),
        ).where(Submission.learner_id == learner_id)
    )
    row = result.one()
    return {
        "approved": row.approved,
        "rejected": row.rejected,
        "pending": row.pending,
        "average_score": round(float(row.average_score or 0), 2),
    }


# ---------------------------------------------------------------------------
# Mentor side
# ---------------------------------------------------------------------------


async def review_submission(
    db: AsyncSession,
    mentor_id: str,
    submission_id: str,
    decision: str,
    feedback_text: str = "",
    score: int | None = None,
) -> dict[str, Any]:
    """
    Record a mentor's decision on a submission.

    The ownership check and the write are one statement. Concurrent reviews
    are last-write-wins.

    Raises:
        NotFound: no such submission, or it belongs to another mentor's program.
    """
    now = datetime.now(timezone.utc)
    stmt = (
        update(Submission)
        .where(Submission.id == submission_id, Submission.task_id.in_(_owned_task_ids(mentor_id)))
        .values(
            status=decision,
            feedback_text=feedback_text,
            score=score,
            reviewed_by=mentor_id,
            reviewed_at=now,
            updated_at=now,
        )
        .returning(Submission.id, Submission.status, Submission.learner_id, Submission.task_id)
        .execution_options(synchronize_session=False)
    )

    async with transaction(db):
        result = await db.execute(stmt)
        updated = result.first()
        if updated is None:
            raise NotFound("Submission not found")
        await record(
            db,
            mentor_id,
            "mentor.review_submission",
            "submission",
            updated.id,
            {"decision": updated.status, "taskId": updated.task_id, "learnerId": updated.learner_id},
        )

    logger.info("submission_reviewed", submission_id=updated.id, decision=updated.status, mentor_id=mentor_id)

    await enqueue_best_effort(
        db,
        updated.learner_id,
        SUBMISSION_REVIEWED,
        "Submission reviewed",
        "Your submission was reviewed.",
        {"submissionId": updated.id, "taskId": updated.task_id, "status": updated.status},
    )
    return {
        "id": updated.id,
        "status": updated.status,
        "learner_id": updated.learner_id,
        "task_id": updated.task_id,
    }


async def list_mentor_submissions(
    db: AsyncSession,
    mentor_id: str,
    page: Page,
    status: str | None = None,
) -> list[dict[str, Any]]:
    """Submissions on the mentor's programs, newest first."""
    stmt = (
        select(
            Submission.id,
            Submission.status,
            Submission.link,
            Submission.notes,
            Submission.score,
            Submission.feedback_text,
            Submission.created_at,
            User.id.label("learner_id"),
            User.full_name.label("learner_name"),
            Task.id.label("task_id"),
            Task.title.label("task_title"),
        )
        .join(User, User.id == Submission.learner_id)
        .join(Task, Task.id == Submission.task_id)
        .join(Program, Program.id == Task.program_id)
        .where(Program.mentor_id == mentor_id)
        .order_by(Submission.created_at.desc())
        .limit(page.limit)
        .offset(page.offset)
    )
    if status:
        stmt = stmt.where(Submission.status == status)

    result = await db.execute(stmt)
    return [dict(r._mapping) for r in result.all()]


async def get_mentor_submission(db: AsyncSession, mentor_id: str, submission_id: str) -> dict[str, Any]:
    result = await db.execute(
        select(
            Submission.id,
            Submission.status,
            Submission.link,
            Submission.notes,
            Submission.score,
            Submission.feedback_text,
            Submission.created_at,
            Submission.reviewed_at,
            User.id.label("learner_id"),
            User.full_name.label("learner_name"),
            User.email.label("learner_email"),
            Task.id.label("task_id"),
            Task.title.label("task_title"),
            Task.deadline_at,
            Program.id.label("program_id"),
            Program.title.label("program_title"),
        )
        .join(User, User.id == Submission.learner_id)
        .join(Task, Task.id == Submission.task_id)
        .join(Program, Program.id == Task.program_id)
        .where(Submission.id == submission_id, Program.mentor_id == mentor_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("Submission not found")
    return dict(row._mapping)


async def learner_timeline(db: AsyncSession, mentor_id: str, learner_id: str) -> list[dict[str, Any]]:
    """A learner's latest submissions, for a mentor who has them in a program.

    Raises:
        Forbidden: the learner is in none of the mentor's programs.
    """
    access = await db.execute(
        select(ProgramLearner.learner_id)
        .join(Program, Program.id == ProgramLearner.program_id)
        .where(Program.mentor_id == mentor_id, ProgramLearner.learner_id == learner_id)
        .limit(1)
    )
    if access.first() is None:
        raise Forbidden()

    result = await db.execute(
        select(
            Submission.id,
            Submission.status,
            Submission.score,
            Submission.feedback_text,
            Submission.created_at,
            Submission.reviewed_at,
            Task.id.label("task_id"),
            Task.title.label("task_title"),
            Task.deadline_at,
        )
        .join(Task, Task.id == Submission.task_id)
        .where(Submission.learner_id == learner_id)
        .order_by(func.coalesce(Submission.reviewed_at, Submission.created_at).desc())
        .limit(TIMELINE_LIMIT)
    )
    return [dict(r._mapping) for r in result.all()]
