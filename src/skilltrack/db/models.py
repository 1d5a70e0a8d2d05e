"""ORM models for the SkillTrack schema.

Ids are application-generated UUID strings and every timestamp is set from
Python in UTC, so the same models run on PostgreSQL and on SQLite.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from skilltrack.db.base import Base, JSONDoc, UUIDStr, new_id, utcnow

ROLES = ("learner", "mentor", "admin")
SUBMISSION_STATUSES = ("submitted", "approved", "rejected")
REVIEW_DECISIONS = ("approved", "rejected")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table. Emails are stored lower-cased."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('learner', 'mentor', 'admin')", name="ck_users_role"),
    )

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class PasswordReset(Base):
    """Single-use password reset token (SHA-256 of the raw token)."""

    __tablename__ = "password_resets"
    __table_args__ = (Index("ix_password_resets_token_hash", "token_hash"),)

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(UUIDStr, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Content hierarchy
# ---------------------------------------------------------------------------


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mentor_id: Mapped[str] = mapped_column(UUIDStr, ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Milestone(Base):
    __tablename__ = "milestones"

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    program_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ModuleChapter(Base):
    """Reading material attached to a milestone by the composite builder."""

    __tablename__ = "module_chapters"

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    milestone_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    body_md: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    program_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    milestone_id: Mapped[str | None] = mapped_column(
        UUIDStr, ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    deadline_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    resource_links: Mapped[list[str]] = mapped_column(JSONDoc, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class ProgramLearner(Base):
    """Learner membership in a program; one row per pair."""

    __tablename__ = "program_learners"

    program_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("programs.id", ondelete="CASCADE"), primary_key=True
    )
    learner_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class Submission(Base):
    """A learner's single attempt at a task.

    The (task_id, learner_id) unique constraint is what makes concurrent
    submits race-safe; ``reviewed_at`` is set exactly when the status is final.
    """

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("task_id", "learner_id", name="uq_submissions_task_learner"),
        CheckConstraint("status IN ('submitted', 'approved', 'rejected')", name="ck_submissions_status"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_submissions_score"),
        CheckConstraint(
            "(status = 'submitted' AND reviewed_at IS NULL) "
            "OR (status IN ('approved', 'rejected') AND reviewed_at IS NOT NULL)",
            name="ck_submissions_reviewed_at",
        ),
    )

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    task_id: Mapped[str] = mapped_column(UUIDStr, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    learner_id: Mapped[str] = mapped_column(
        UUIDStr, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    link: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="submitted")
    feedback_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(UUIDStr, ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Side channels
# ---------------------------------------------------------------------------


class Notification(Base):
    """Per-user outbox entry. Created by system events only."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_type_created", "type", "created_at"),
    )

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(UUIDStr, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    meta: Mapped[dict[str, Any]] = mapped_column(JSONDoc, nullable=False, default=dict)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class AuditLog(Base):
    """Append-only record of privileged actions. ``actor_user_id`` is null for signup."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_created", "created_at"),)

    id: Mapped[str] = mapped_column(UUIDStr, primary_key=True, default=new_id)
    actor_user_id: Mapped[str | None] = mapped_column(UUIDStr, ForeignKey("users.id"), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    meta: Mapped[dict[str, Any]] = mapped_column(JSONDoc, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
