"""Health, readiness, and version endpoints."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.config import Settings, get_app_settings
from skilltrack.database import get_session
from skilltrack.errors import ServiceUnavailable

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, bool]:
    """Liveness probe: the process is up."""
    return {"ok": True}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: 503 unless the database answers ``SELECT 1``."""
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("readiness_check_failed", error=str(exc))
        raise ServiceUnavailable("Database unavailable") from exc
    return {"ok": True, "checks": {"database": "ok"}}


@router.get("/version")
async def version(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    """Return API version and environment."""
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
