"""Program-with-structure creation is all or nothing."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from skilltrack.db.models import AuditLog, Milestone, ModuleChapter, Program, Task
from skilltrack.errors import ValidationError
from skilltrack.programs import builder
from skilltrack.programs.builder import create_program_with_structure
from skilltrack.programs.schemas import ModuleInput
from tests.conftest import auth_headers


def _modules(n: int, chapters: int, items: int) -> list[dict]:
    deadline = (datetime.now(timezone.utc) + timedelta(days=14)).isoformat()
    return [
        {
            "title": f"Module {m}",
            "sort_order": m,
            "chapters": [{"title": f"Chapter {m}.{c}", "body_md": "# Read me"} for c in range(chapters)],
            "items": [
                {
                    "title": f"Exercise {m}.{i}",
                    "deadline_at": deadline,
                    "resource_links": ["https://docs.python.org/3/"],
                }
                for i in range(items)
            ],
        }
        for m in range(n)
    ]


async def _count(database, model) -> int:
    async with database.session() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreateProgramWithStructure:
    async def test_creates_whole_tree(self, client, admin, mentor, database):
        response = await client.post(
            "/admin/programs/with-structure",
            json={"title": "Python Track", "mentor_id": mentor.id, "modules": _modules(2, 3, 2)},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        program_id = response.json()["program"]["id"]

        assert await _count(database, Program) == 1
        assert await _count(database, Milestone) == 2
        assert await _count(database, ModuleChapter) == 6
        assert await _count(database, Task) == 4

        async with database.session() as s:
            actions = (await s.execute(select(AuditLog.action))).scalars().all()
            tasks = (await s.execute(select(Task))).scalars().all()
        assert len(actions) == 1 + 2 + 2 * 3 + 2 * 2
        assert actions.count("admin.create_module_chapter") == 6
        assert all(t.program_id == program_id and t.milestone_id is not None for t in tasks)

    async def test_invalid_mentor_writes_nothing(self, client, admin, learner, database):
        response = await client.post(
            "/admin/programs/with-structure",
            json={"title": "Python Track", "mentor_id": learner.id, "modules": _modules(1, 1, 1)},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid mentorId"
        assert await _count(database, Program) == 0
        assert await _count(database, AuditLog) == 0

    async def test_failure_midway_rolls_back_everything(self, admin, mentor, database, monkeypatch):
        real_record = builder.record

        async def failing_record(db, actor_id, action, *args, **kwargs):
            if action == "admin.create_module_item":
                raise RuntimeError("disk full")
            return await real_record(db, actor_id, action, *args, **kwargs)

        monkeypatch.setattr(builder, "record", failing_record)
        modules = [ModuleInput.model_validate(m) for m in _modules(1, 2, 1)]

        async with database.session() as s:
            with pytest.raises(RuntimeError):
                await create_program_with_structure(s, admin.id, mentor.id, "Python Track", "", modules)

        for model in (Program, Milestone, ModuleChapter, Task, AuditLog):
            assert await _count(database, model) == 0

    async def test_invalid_mentor_raises_before_writing(self, admin, learner, database):
        async with database.session() as s:
            with pytest.raises(ValidationError):
                await create_program_with_structure(s, admin.id, learner.id, "Python Track", "", [])
        assert await _count(database, Program) == 0

    async def test_requires_admin(self, client, mentor):
        response = await client.post(
            "/admin/programs/with-structure",
            json={"title": "Python Track", "mentor_id": mentor.id},
            headers=auth_headers(mentor),
        )
        assert response.status_code == 403
