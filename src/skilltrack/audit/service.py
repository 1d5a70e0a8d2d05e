"""Audit log: append-only record of privileged state changes.

``record`` only adds the row to the caller's session, so the entry commits
or rolls back together with the change it describes. Nothing in the
workflow reads these rows back.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.db.models import AuditLog, User
from skilltrack.pagination import Page


async def record(
    db: AsyncSession,
    actor_user_id: str | None,
    action: str,
    entity_type: str | None,
    entity_id: str | None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Append one audit row (flushed, not committed)."""
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=meta or {},
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_audit_logs(
    db: AsyncSession,
    page: Page,
    actor_user_id: str | None = None,
) -> list[dict[str, Any]]:
    """Newest first, with the actor's name when there is one."""
    stmt = (
        select(AuditLog, User.full_name.label("actor_name"))
        .outerjoin(User, User.id == AuditLog.actor_user_id)
        .order_by(AuditLog.created_at.desc())
        .limit(page.limit)
        .offset(page.offset)
    )
    if actor_user_id:
        stmt = stmt.where(AuditLog.actor_user_id == actor_user_id)

    result = await db.execute(stmt)
    return [
        {
            "id": log.id,
            "actor_user_id": log.actor_user_id,
            "actor_name": actor_name,
            "action": log.action,
            "entity_type": log.entity_type,
            "entity_id": log.entity_id,
            "meta": log.meta,
            "created_at": log.created_at,
        }
        for log, actor_name in result.all()
    ]
