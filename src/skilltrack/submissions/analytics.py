"""Admin analytics over submissions."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import case, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.db.models import Submission, User

TREND_WEEKS = 12
RANKING_LIMIT = 50


def week_start(ts: datetime) -> datetime:
    """Monday 00:00 UTC of the week containing ``ts``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    day = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


async def completion_trends(
    db: AsyncSession,
    weeks: int = TREND_WEEKS,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Weekly approved/rejected/submitted counts, newest week first.

    Only weeks with at least one submission appear. Bucketing happens here so
    the week boundary is the same on every backend.
    """
    now = now or datetime.now(timezone.utc)
    since = week_start(now) - timedelta(weeks=weeks - 1)

    result = await db.execute(
        select(Submission.created_at, Submission.status).where(Submission.created_at >= since)
    )

    buckets: dict[datetime, dict[str, int]] = defaultdict(
        lambda: {"approved": 0, "rejected": 0, "submitted": 0}
    )
    for created_at, status in result.all():
        buckets[week_start(created_at)][status] += 1

    return [{"week": week, **counts} for week, counts in sorted(buckets.items(), reverse=True)]


async def learner_ranking(db: AsyncSession, limit: int = RANKING_LIMIT) -> list[dict[str, Any]]:
    """Learners by approved count, then average score."""
    approved_count = func.count(case((Submission.status == "approved", 1))).label("approved_count")
    avg_score = func.coalesce(func.avg(Submission.score), 0).label("avg_score")

    result = await db.execute(
        select(User.id, User.full_name, User.email, approved_count, avg_score)
        .outerjoin(Submission, Submission.learner_id == User.id)
        .where(User.role == "learner")
        .group_by(User.id, User.full_name, User.email)
        .order_by(desc("approved_count"), desc("avg_score"))
        .limit(limit)
    )
    return [
        {
            "id": r.id,
            "full_name": r.full_name,
            "email": r.email,
            "approved_count": r.approved_count,
            "avg_score": round(float(r.avg_score), 2),
        }
        for r in result.all()
    ]
