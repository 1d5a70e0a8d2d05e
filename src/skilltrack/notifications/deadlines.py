"""Deadline reminders.

``generate_deadline_notifications`` inserts one ``task_deadline`` notification
per (task, learner) pair that:

1. has a deadline between now and now + horizon,
2. has no approved submission from that learner,
3. has not had a ``task_deadline`` notification within the dedup window.

It is a single ``INSERT ... SELECT``, so running it twice inside the dedup
window is a no-op the second time. ``DeadlineScanner`` runs it on a fixed
interval inside the API process.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import DateTime, String, and_, cast, insert, literal, literal_column, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.database import Database, transaction
from skilltrack.db.functions import json_build_object, random_uuid
from skilltrack.db.models import Notification, ProgramLearner, Submission, Task
from skilltrack.notifications.service import TASK_DEADLINE

logger = structlog.get_logger()

DEDUP_WINDOW_HOURS = 12


async def generate_deadline_notifications(
    db: AsyncSession,
    horizon_hours: int,
    dedup_hours: int = DEDUP_WINDOW_HOURS,
    now: datetime | None = None,
) -> int:
    """Insert due reminders in one statement. Returns the number inserted.

    The caller owns the transaction.
    """
    now = now or datetime.now(timezone.utc)
    horizon_end = now + timedelta(hours=max(horizon_hours, 1))
    dedup_start = now - timedelta(hours=dedup_hours)
    task_id_text = cast(Task.id, String)

    already_notified = (
        select(Notification.id)
        .where(
            Notification.user_id == ProgramLearner.learner_id,
            Notification.type == TASK_DEADLINE,
            Notification.meta["taskId"].as_string() == task_id_text,
            Notification.created_at > dedup_start,
        )
        .exists()
    )

    due = (
        select(
            random_uuid(),
            ProgramLearner.learner_id,
            literal(TASK_DEADLINE, String),
            literal("Task deadline soon", String),
            literal("A task deadline is approaching.", String),
            json_build_object(
                literal_column("'taskId'"), task_id_text,
                literal_column("'programId'"), cast(Task.program_id, String),
                literal_column("'deadlineAt'"), Task.deadline_at,
                literal_column("'title'"), Task.title,
            ),
            literal(now, DateTime(timezone=True)),
        )
        .select_from(Task)
        .join(ProgramLearner, ProgramLearner.program_id == Task.program_id)
        .outerjoin(
            Submission,
            and_(Submission.task_id == Task.id, Submission.learner_id == ProgramLearner.learner_id),
        )
        .where(
            Task.deadline_at >= now,
            Task.deadline_at <= horizon_end,
            or_(Submission.id.is_(None), Submission.status != "approved"),
            ~already_notified,
        )
    )

    stmt = insert(Notification).from_select(
        ["id", "user_id", "type", "title", "body", "meta", "created_at"],
        due,
    )
    result = await db.execute(stmt)
    return max(result.rowcount or 0, 0)


class DeadlineScanner:
    """Runs the deadline scan on a fixed interval until stopped.

    Each tick is its own task; a tick that finds the previous run still in
    flight is skipped. A failed tick is logged and the loop keeps going.
    """

    def __init__(
        self,
        database: Database,
        horizon_hours: int,
        interval_seconds: float,
        dedup_hours: int = DEDUP_WINDOW_HOURS,
        initial_delay_seconds: float = 3.0,
    ) -> None:
        self.database = database
        self.horizon_hours = max(horizon_hours, 1)
        self.interval_seconds = interval_seconds
        self.dedup_hours = dedup_hours
        self.initial_delay_seconds = initial_delay_seconds
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[None]] = set()

    async def run_once(self) -> int | None:
        """Run one scan. Returns the inserted count, or None if skipped."""
        if self._lock.locked():
            logger.info("deadline_scan_skipped", reason="previous_run_in_flight")
            return None

        async with self._lock:
            async with self.database.session() as db, transaction(db):
                inserted = await generate_deadline_notifications(
                    db, self.horizon_hours, self.dedup_hours
                )
        logger.info("deadline_scan_completed", inserted=inserted)
        return inserted

    async def _tick(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("deadline_scan_failed")

    async def _run(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            tick = asyncio.create_task(self._tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._run())
            logger.info(
                "deadline_scanner_started",
                interval_seconds=self.interval_seconds,
                horizon_hours=self.horizon_hours,
            )

    async def stop(self) -> None:
        """Cancel the loop and any in-flight tick."""
        tasks = [t for t in (self._loop_task, *self._ticks) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._ticks.clear()
        logger.info("deadline_scanner_stopped")
