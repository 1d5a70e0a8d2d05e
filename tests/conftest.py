"""Shared test fixtures.

Each test gets its own SQLite file (foreign keys on) and an app built
around it; the deadline scanner and Redis are off.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from skilltrack.auth.delivery import ResetLinkDelivery
from skilltrack.auth.jwt import create_access_token
from skilltrack.auth.password import hash_password
from skilltrack.config import Settings
from skilltrack.database import Database
from skilltrack.db.models import Program, ProgramLearner, Task, User
from skilltrack.main import create_app

PASSWORD = "secret123"


class RecordingDelivery(ResetLinkDelivery):
    """Keeps reset links in memory instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail = False

    async def send_reset_link(self, to_email: str, full_name: str, reset_url: str) -> bool:
        if self.fail:
            msg = "delivery provider down"
            raise ConnectionError(msg)
        self.sent.append({"to": to_email, "full_name": full_name, "reset_url": reset_url})
        return True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'skilltrack.db'}",
        redis_url="",
        deadline_alerts_enabled=False,
        log_format="console",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.database_url, settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def app(settings: Settings, database: Database, delivery: RecordingDelivery) -> FastAPI:
    application = create_app(settings, database=database)
    application.state.reset_delivery = delivery
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over ASGI; lifespan is not run, the database is injected."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role, user.email)}"}


@pytest.fixture
def make_user(database: Database) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(role: str = "learner", email: str | None = None, full_name: str | None = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"{role}{n}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
            full_name=full_name or f"{role.title()} {n}",
        )
        async with database.session() as s:
            s.add(user)
            await s.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def admin(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("admin", full_name="Ada Admin")


@pytest_asyncio.fixture
async def mentor(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("mentor", full_name="Mona Mentor")


@pytest_asyncio.fixture
async def learner(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("learner", full_name="Leo Learner")


@pytest.fixture
def make_program(database: Database) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Program owned by ``mentor`` with ``tasks`` tasks and the given learners assigned."""

    async def _make(
        mentor: User,
        learners: list[User] | tuple[User, ...] = (),
        tasks: int = 1,
        deadline_in: timedelta = timedelta(days=7),
    ) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        async with database.session() as s:
            program = Program(title="Backend Basics", description="", mentor_id=mentor.id)
            s.add(program)
            await s.flush()
            task_rows = [
                Task(
                    program_id=program.id,
                    title=f"Task {i + 1}",
                    description="",
                    deadline_at=now + deadline_in + timedelta(minutes=i),
                    resource_links=[],
                )
                for i in range(tasks)
            ]
            s.add_all(task_rows)
            s.add_all(ProgramLearner(program_id=program.id, learner_id=lr.id) for lr in learners)
            await s.commit()
        return {"program_id": program.id, "task_ids": [t.id for t in task_rows]}

    return _make
