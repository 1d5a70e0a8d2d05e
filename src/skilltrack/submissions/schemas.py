"""Request/response schemas for the submission workflow."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

Decision = Literal["approved", "rejected"]


class SubmitRequest(BaseModel):
    link: HttpUrl
    notes: str = Field("", max_length=2000)


class ReviewRequest(BaseModel):
    decision: Decision
    feedback_text: str = Field("", max_length=2000)
    score: int | None = Field(None, ge=0, le=100)


class SubmissionSummary(BaseModel):
    id: str
    status: str
    task_id: str
    learner_id: str


class SubmissionEnvelope(BaseModel):
    submission: SubmissionSummary
