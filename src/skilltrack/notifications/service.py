"""Notification outbox.

Notifications are:
1. Created only by system events (submission workflow, deadline scan)
2. Persisted per recipient, newest first on read
3. Marked read by their owner only; anyone else's mark is a silent no-op

Types: submission_submitted, submission_reviewed, task_deadline
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.db.models import Notification
from skilltrack.pagination import Page

logger = structlog.get_logger()

SUBMISSION_SUBMITTED = "submission_submitted"
SUBMISSION_REVIEWED = "submission_reviewed"
TASK_DEADLINE = "task_deadline"

VALID_TYPES = {SUBMISSION_SUBMITTED, SUBMISSION_REVIEWED, TASK_DEADLINE}


async def enqueue(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    body: str = "",
    meta: dict[str, Any] | None = None,
) -> Notification:
    """Add a notification to the session (flushed, not committed)."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        body=body,
        meta=meta or {},
    )
    db.add(notification)
    await db.flush()
    return notification


async def enqueue_best_effort(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    body: str = "",
    meta: dict[str, Any] | None = None,
) -> Notification | None:
    """Enqueue and commit on its own; failures are logged and swallowed.

    Call only after the primary write has committed: nothing here may undo it.
    """
    try:
        notification = await enqueue(db, user_id, type_, title, body, meta)
        await db.commit()
    except Exception:
        logger.warning("notification_enqueue_failed", user_id=user_id, type=type_, exc_info=True)
        try:
            await db.rollback()
        except Exception:
            logger.warning("rollback_failed", exc_info=True)
        return None
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    page: Page,
    unread_only: bool = False,
) -> list[Notification]:
    """User's notifications, most recent first."""
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .offset(page.offset)
        .limit(page.limit)
    )
    if unread_only:
        stmt = stmt.where(Notification.read_at.is_(None))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
    )
    return result.scalar_one()


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: str) -> bool:
    """Mark one of the user's notifications read. Returns True if a row changed.

    Keyed on (id, owner): another user's notification is left untouched.
    """
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount > 0
