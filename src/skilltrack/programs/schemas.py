"""Request/response schemas for programs, milestones and tasks."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, field_validator


def _as_utc(v: datetime) -> datetime:
    return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)


class CreateProgramRequest(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: str = Field("", max_length=2000)
    mentor_id: UUID


class CreateMilestoneRequest(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    sort_order: int = Field(0, ge=0, le=10000)


class CreateTaskRequest(BaseModel):
    milestone_id: UUID | None = None
    title: str = Field(..., min_length=2, max_length=200)
    description: str = Field("", max_length=5000)
    deadline_at: datetime
    resource_links: list[HttpUrl] = Field(default_factory=list)

    @field_validator("deadline_at")
    @classmethod
    def deadline_utc(cls, v: datetime) -> datetime:
        """Naive deadlines are taken as UTC."""
        return _as_utc(v)

    def links(self) -> list[str]:
        return [str(link) for link in self.resource_links]


class AssignLearnerRequest(BaseModel):
    learner_id: UUID


class AssignMentorRequest(BaseModel):
    mentor_id: UUID


# --- Composite builder ---


class ChapterInput(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    sort_order: int = Field(0, ge=0, le=10000)
    body_md: str = Field("", max_length=50000)


class ModuleItemInput(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: str = Field("", max_length=5000)
    deadline_at: datetime
    resource_links: list[HttpUrl] = Field(default_factory=list)

    @field_validator("deadline_at")
    @classmethod
    def deadline_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def links(self) -> list[str]:
        return [str(link) for link in self.resource_links]


class ModuleInput(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    sort_order: int = Field(0, ge=0, le=10000)
    chapters: list[ChapterInput] = Field(default_factory=list)
    items: list[ModuleItemInput] = Field(default_factory=list)


class CreateProgramWithStructureRequest(CreateProgramRequest):
    modules: list[ModuleInput] = Field(default_factory=list)


# --- Responses ---


class ProgramResponse(BaseModel):
    id: str
    title: str
    description: str
    mentor_id: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class MilestoneResponse(BaseModel):
    id: str
    program_id: str
    title: str
    sort_order: int

    model_config = {"from_attributes": True}


class TaskResponse(BaseModel):
    id: str
    program_id: str
    milestone_id: str | None = None
    title: str
    deadline_at: datetime

    model_config = {"from_attributes": True}


class ProgramEnvelope(BaseModel):
    program: ProgramResponse


class MilestoneEnvelope(BaseModel):
    milestone: MilestoneResponse


class TaskEnvelope(BaseModel):
    task: TaskResponse
