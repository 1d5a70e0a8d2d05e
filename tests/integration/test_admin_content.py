"""Admin management of users, programs, milestones, tasks and assignments."""

import uuid
from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import func, select

from skilltrack.db.models import AuditLog, ProgramLearner
from tests.conftest import auth_headers


def _deadline(days: int = 3) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


async def _audit_actions(database) -> list[str]:
    async with database.session() as s:
        return list((await s.execute(select(AuditLog.action).order_by(AuditLog.created_at))).scalars())


class TestUsers:
    async def test_create_user_any_role(self, client: AsyncClient, admin, database):
        response = await client.post(
            "/admin/users",
            json={"email": "Mentor.Two@example.com", "password": "secret123", "role": "mentor", "full_name": "M Two"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == "mentor"
        assert user["email"] == "mentor.two@example.com"
        assert await _audit_actions(database) == ["admin.create_user"]

    async def test_create_user_duplicate(self, client: AsyncClient, admin, learner):
        response = await client.post(
            "/admin/users",
            json={"email": learner.email, "password": "secret123", "role": "learner", "full_name": "Dup"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 409

    async def test_list_users_with_role_filter(self, client: AsyncClient, admin, mentor, learner):
        response = await client.get("/admin/users", params={"role": "mentor"}, headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert [u["id"] for u in data["items"]] == [mentor.id]
        assert data["limit"] == 20
        assert data["offset"] == 0


class TestPrograms:
    async def test_create_program(self, client: AsyncClient, admin, mentor, database):
        response = await client.post(
            "/admin/programs",
            json={"title": "Python 101", "description": "Intro", "mentor_id": mentor.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        program = response.json()["program"]
        assert program["mentor_id"] == mentor.id
        assert await _audit_actions(database) == ["admin.create_program"]

    async def test_create_program_rejects_non_mentor(self, client: AsyncClient, admin, learner, database):
        response = await client.post(
            "/admin/programs",
            json={"title": "Python 101", "mentor_id": learner.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid mentorId"
        assert await _audit_actions(database) == []

    async def test_program_detail(self, client: AsyncClient, admin, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner])
        response = await client.get(f"/admin/programs/{seeded['program_id']}", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["program"]["mentor_name"] == mentor.full_name
        assert [lr["id"] for lr in data["learners"]] == [learner.id]

    async def test_program_detail_missing_is_404(self, client: AsyncClient, admin):
        response = await client.get(f"/admin/programs/{uuid.uuid4()}", headers=auth_headers(admin))
        assert response.status_code == 404

    async def test_malformed_id_is_400(self, client: AsyncClient, admin):
        response = await client.get("/admin/programs/not-a-uuid", headers=auth_headers(admin))
        assert response.status_code == 400

    async def test_list_programs_clamps_limit(self, client: AsyncClient, admin, mentor, make_program):
        await make_program(mentor)
        response = await client.get(
            "/admin/programs", params={"limit": 1000, "offset": -4}, headers=auth_headers(admin)
        )
        data = response.json()
        assert data["limit"] == 50
        assert data["offset"] == 0
        assert len(data["items"]) == 1


class TestMilestonesAndTasks:
    async def test_milestone_and_task(self, client: AsyncClient, admin, mentor, make_program, database):
        seeded = await make_program(mentor, tasks=0)
        pid = seeded["program_id"]
        headers = auth_headers(admin)

        milestone = await client.post(
            f"/admin/programs/{pid}/milestones", json={"title": "Week 1", "sort_order": 1}, headers=headers
        )
        assert milestone.status_code == 201
        mid = milestone.json()["milestone"]["id"]

        task = await client.post(
            f"/admin/programs/{pid}/tasks",
            json={
                "milestone_id": mid,
                "title": "Write a parser",
                "deadline_at": _deadline(),
                "resource_links": ["https://docs.python.org/3/"],
            },
            headers=headers,
        )
        assert task.status_code == 201
        assert task.json()["task"]["milestone_id"] == mid
        assert await _audit_actions(database) == ["admin.create_milestone", "admin.create_task"]

    async def test_milestone_on_missing_program(self, client: AsyncClient, admin):
        response = await client.post(
            f"/admin/programs/{uuid.uuid4()}/milestones", json={"title": "Week 1"}, headers=auth_headers(admin)
        )
        assert response.status_code == 404

    async def test_task_with_foreign_milestone(self, client: AsyncClient, admin, mentor, make_program):
        a = await make_program(mentor, tasks=0)
        b = await make_program(mentor, tasks=0)
        headers = auth_headers(admin)
        milestone = await client.post(
            f"/admin/programs/{b['program_id']}/milestones", json={"title": "Other"}, headers=headers
        )

        response = await client.post(
            f"/admin/programs/{a['program_id']}/tasks",
            json={"milestone_id": milestone.json()["milestone"]["id"], "title": "Task", "deadline_at": _deadline()},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid milestoneId for program"

    async def test_task_rejects_bad_link(self, client: AsyncClient, admin, mentor, make_program):
        seeded = await make_program(mentor, tasks=0)
        response = await client.post(
            f"/admin/programs/{seeded['program_id']}/tasks",
            json={"title": "Task", "deadline_at": _deadline(), "resource_links": ["not a url"]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400


class TestAssignments:
    async def test_assign_learner_is_idempotent(self, client: AsyncClient, admin, mentor, learner, make_program, database):
        seeded = await make_program(mentor)
        url = f"/admin/programs/{seeded['program_id']}/assign-learner"
        headers = auth_headers(admin)

        first = await client.post(url, json={"learner_id": learner.id}, headers=headers)
        second = await client.post(url, json={"learner_id": learner.id}, headers=headers)
        assert first.json() == second.json() == {"ok": True}

        async with database.session() as s:
            count = (await s.execute(select(func.count()).select_from(ProgramLearner))).scalar_one()
        assert count == 1
        assert await _audit_actions(database) == ["admin.assign_learner", "admin.assign_learner"]

    async def test_assign_non_learner(self, client: AsyncClient, admin, mentor, make_program):
        seeded = await make_program(mentor)
        response = await client.post(
            f"/admin/programs/{seeded['program_id']}/assign-learner",
            json={"learner_id": mentor.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid learnerId"

    async def test_assign_learner_missing_program(self, client: AsyncClient, admin, learner):
        response = await client.post(
            f"/admin/programs/{uuid.uuid4()}/assign-learner",
            json={"learner_id": learner.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404

    async def test_assign_mentor(self, client: AsyncClient, admin, mentor, make_user, make_program, database):
        other = await make_user("mentor")
        seeded = await make_program(mentor)
        response = await client.post(
            f"/admin/programs/{seeded['program_id']}/assign-mentor",
            json={"mentor_id": other.id},
            headers=auth_headers(admin),
        )
        assert response.json() == {"ok": True}

        detail = await client.get(f"/admin/programs/{seeded['program_id']}", headers=auth_headers(admin))
        assert detail.json()["program"]["mentor_id"] == other.id
        assert await _audit_actions(database) == ["admin.assign_mentor"]

    async def test_assign_mentor_missing_program(self, client: AsyncClient, admin, mentor):
        response = await client.post(
            f"/admin/programs/{uuid.uuid4()}/assign-mentor",
            json={"mentor_id": mentor.id},
            headers=auth_headers(admin),
        )
        assert response.status_code == 404
