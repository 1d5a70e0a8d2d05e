"""Submission workflow endpoints for learners and mentors, plus admin analytics."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_admin, require_learner, require_mentor
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page
from skilltrack.submissions import analytics, service
from skilltrack.submissions.schemas import (
    ReviewRequest,
    SubmissionEnvelope,
    SubmissionSummary,
    SubmitRequest,
)

learner_router = APIRouter(prefix="/learner", tags=["Learner"])
mentor_router = APIRouter(prefix="/mentor", tags=["Mentor"])
admin_router = APIRouter(prefix="/admin/analytics", tags=["Admin"])


# --- Learner ---


@learner_router.post("/tasks/{task_id}/submit", response_model=SubmissionEnvelope)
async def submit(
    task_id: UUID,
    body: SubmitRequest,
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> SubmissionEnvelope:
    """Submit work for a task. One submission per task."""
    created = await service.submit_task(db, principal.sub, str(task_id), str(body.link), body.notes)
    return SubmissionEnvelope(submission=SubmissionSummary(**created))


@learner_router.get("/performance-report")
async def performance_report(
    principal: Principal = Depends(require_learner),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"report": await service.performance_report(db, principal.sub)}


# --- Mentor ---


@mentor_router.get("/submissions")
async def list_submissions(
    status: Literal["submitted", "approved", "rejected"] | None = Query(None),
    page: Page = Depends(get_page),
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Submissions on the caller's programs, newest first."""
    return page.wrap(await service.list_mentor_submissions(db, principal.sub, page, status=status))


@mentor_router.get("/submissions/{submission_id}")
async def get_submission(
    submission_id: UUID,
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"submission": await service.get_mentor_submission(db, principal.sub, str(submission_id))}


@mentor_router.post("/submissions/{submission_id}/review", response_model=SubmissionEnvelope)
async def review(
    submission_id: UUID,
    body: ReviewRequest,
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> SubmissionEnvelope:
    updated = await service.review_submission(
        db,
        principal.sub,
        str(submission_id),
        decision=body.decision,
        feedback_text=body.feedback_text,
        score=body.score,
    )
    return SubmissionEnvelope(submission=SubmissionSummary(**updated))


@mentor_router.get("/learners/{learner_id}/timeline")
async def learner_timeline(
    learner_id: UUID,
    principal: Principal = Depends(require_mentor),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"items": await service.learner_timeline(db, principal.sub, str(learner_id))}


# --- Admin analytics ---


@admin_router.get("/completion-trends")
async def completion_trends(
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Weekly review outcomes over the last twelve weeks."""
    return {"items": await analytics.completion_trends(db)}


@admin_router.get("/learner-ranking")
async def learner_ranking(
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"items": await analytics.learner_ranking(db)}
