"""arq worker for deadline reminders.

Runs the deadline scan out of process, for deployments that set
``SKILLTRACK_DEADLINE_ALERTS_ENABLED=false`` on the API and start this
worker instead:

    arq skilltrack.workers.settings.WorkerSettings
"""

from __future__ import annotations

from typing import Any

import structlog
from arq import cron
from arq.connections import RedisSettings

from skilltrack.config import get_settings
from skilltrack.database import Database, transaction
from skilltrack.notifications.deadlines import generate_deadline_notifications

logger = structlog.get_logger()


def scan_minutes(interval_minutes: int) -> set[int]:
    """Minutes of the hour on which the cron job fires."""
    step = min(max(interval_minutes, 1), 60)
    return set(range(0, 60, step))


async def startup(ctx: dict[str, Any]) -> None:
    settings = get_settings()
    ctx["db"] = Database(settings.database_url, settings)
    logger.info("deadline_worker_started")


async def shutdown(ctx: dict[str, Any]) -> None:
    database: Database | None = ctx.get("db")
    if database is not None:
        await database.dispose()
    logger.info("deadline_worker_stopped")


async def scan_deadlines(ctx: dict[str, Any]) -> int:
    """One deadline scan in its own transaction. Returns rows inserted."""
    settings = get_settings()
    database: Database = ctx["db"]
    async with database.session() as db, transaction(db):
        inserted = await generate_deadline_notifications(
            db,
            horizon_hours=settings.deadline_alert_hours,
            dedup_hours=settings.deadline_alert_dedup_hours,
        )
    logger.info("deadline_scan_completed", inserted=inserted, runner="arq")
    return inserted


class WorkerSettings:
    """arq worker settings for the deadline scan."""

    functions = [scan_deadlines]
    cron_jobs = [
        cron(
            scan_deadlines,
            minute=scan_minutes(get_settings().deadline_alert_interval_minutes),
            run_at_startup=True,
            unique=True,
        ),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 1
