"""Initial schema: users, content hierarchy, submissions, side channels.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_UUID = postgresql.UUID(as_uuid=False)
_TS = sa.DateTime(timezone=True)


def _id() -> sa.Column:
    return sa.Column("id", _UUID, primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _created_at() -> sa.Column:
    return sa.Column("created_at", _TS, server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Create all tables."""
    # --- Users ---
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        _created_at(),
        sa.CheckConstraint("role IN ('learner', 'mentor', 'admin')", name="ck_users_role"),
    )

    op.create_table(
        "password_resets",
        _id(),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", _TS, nullable=False),
        sa.Column("used_at", _TS, nullable=True),
        _created_at(),
    )
    op.create_index("ix_password_resets_token_hash", "password_resets", ["token_hash"])

    # --- Content hierarchy ---
    op.create_table(
        "programs",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("mentor_id", _UUID, sa.ForeignKey("users.id"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_programs_mentor_id", "programs", ["mentor_id"])

    op.create_table(
        "milestones",
        _id(),
        sa.Column("program_id", _UUID, sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        _created_at(),
    )
    op.create_index("ix_milestones_program_id", "milestones", ["program_id"])

    op.create_table(
        "module_chapters",
        _id(),
        sa.Column("milestone_id", _UUID, sa.ForeignKey("milestones.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column("body_md", sa.Text(), server_default="", nullable=False),
        _created_at(),
    )
    op.create_index("ix_module_chapters_milestone_id", "module_chapters", ["milestone_id"])

    op.create_table(
        "tasks",
        _id(),
        sa.Column("program_id", _UUID, sa.ForeignKey("programs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("milestone_id", _UUID, sa.ForeignKey("milestones.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), server_default="", nullable=False),
        sa.Column("deadline_at", _TS, nullable=False),
        sa.Column("resource_links", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_tasks_program_id", "tasks", ["program_id"])
    op.create_index("ix_tasks_deadline_at", "tasks", ["deadline_at"])

    op.create_table(
        "program_learners",
        sa.Column("program_id", _UUID, sa.ForeignKey("programs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("learner_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        _created_at(),
    )
    op.create_index("ix_program_learners_learner_id", "program_learners", ["learner_id"])

    # --- Submissions ---
    op.create_table(
        "submissions",
        _id(),
        sa.Column("task_id", _UUID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("learner_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("link", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), server_default="", nullable=False),
        sa.Column("status", sa.String(16), server_default="submitted", nullable=False),
        sa.Column("feedback_text", sa.Text(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("reviewed_by", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", _TS, nullable=True),
        _created_at(),
        sa.Column("updated_at", _TS, server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("task_id", "learner_id", name="uq_submissions_task_learner"),
        sa.CheckConstraint("status IN ('submitted', 'approved', 'rejected')", name="ck_submissions_status"),
        sa.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_submissions_score"),
        sa.CheckConstraint(
            "(status = 'submitted' AND reviewed_at IS NULL) "
            "OR (status IN ('approved', 'rejected') AND reviewed_at IS NOT NULL)",
            name="ck_submissions_reviewed_at",
        ),
    )
    op.create_index("ix_submissions_learner_id", "submissions", ["learner_id"])

    # --- Notifications & audit ---
    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", _UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text(), server_default="", nullable=False),
        sa.Column("meta", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("read_at", _TS, nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index("ix_notifications_type_created", "notifications", ["type", "created_at"])
    op.execute(
        "CREATE INDEX ix_notifications_deadline_task ON notifications ((meta->>'taskId')) "
        "WHERE type = 'task_deadline'"
    )

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("actor_user_id", _UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=True),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("meta", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        _created_at(),
    )
    op.create_index("ix_audit_logs_created", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "audit_logs",
        "notifications",
        "submissions",
        "program_learners",
        "tasks",
        "module_chapters",
        "milestones",
        "programs",
        "password_resets",
        "users",
    ):
        op.drop_table(table)
