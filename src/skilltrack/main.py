"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from skilltrack.audit.router import router as audit_router
from skilltrack.auth.admin_router import router as admin_users_router
from skilltrack.auth.router import router as auth_router
from skilltrack.config import Settings, get_settings
from skilltrack.database import Database
from skilltrack.health.router import router as health_router
from skilltrack.middleware import setup_middleware
from skilltrack.notifications.deadlines import DeadlineScanner
from skilltrack.notifications.router import router as notifications_router
from skilltrack.programs.admin_router import router as admin_programs_router
from skilltrack.programs.learner_router import router as learner_router
from skilltrack.programs.mentor_router import router as mentor_router
from skilltrack.redis_client import close_redis, create_redis
from skilltrack.submissions.router import admin_router as analytics_router
from skilltrack.submissions.router import learner_router as learner_submissions_router
from skilltrack.submissions.router import mentor_router as mentor_submissions_router

logger = structlog.get_logger()


def _build_scanner(settings: Settings, database: Database) -> DeadlineScanner:
    return DeadlineScanner(
        database,
        horizon_hours=settings.deadline_alert_hours,
        interval_seconds=max(settings.deadline_alert_interval_minutes, 1) * 60,
        dedup_hours=settings.deadline_alert_dedup_hours,
        initial_delay_seconds=settings.deadline_alert_initial_delay_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the process-wide resources: pool, Redis client, deadline scanner."""
    settings: Settings = app.state.settings

    owns_db = app.state.db is None
    if owns_db:
        app.state.db = Database(settings.database_url, settings)
    if settings.redis_url:
        app.state.redis = create_redis(
            settings.redis_url,
            connect_timeout=settings.redis_connect_timeout_seconds,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )

    scanner: DeadlineScanner | None = None
    if settings.deadline_alerts_enabled:
        scanner = _build_scanner(settings, app.state.db)
        scanner.start()

    logger.info("app_started", version=settings.app_version, environment=settings.environment)
    yield

    if scanner is not None:
        await scanner.stop()
    await close_redis(app.state.redis)
    app.state.redis = None
    if owns_db:
        await app.state.db.dispose()
        app.state.db = None


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` lets callers (tests, scripts) supply an already built pool;
    otherwise the lifespan creates one from ``settings.database_url``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="SkillTrack API",
        description="Mentorship programs, task submissions and reviews",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.redis = None

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(learner_router)
    app.include_router(learner_submissions_router)
    app.include_router(mentor_router)
    app.include_router(mentor_submissions_router)
    app.include_router(admin_users_router)
    app.include_router(admin_programs_router)
    app.include_router(analytics_router)
    app.include_router(audit_router)
    app.include_router(notifications_router)

    return app


app = create_app()
