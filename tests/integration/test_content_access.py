"""Learner and mentor reads: membership is 403, existence is 404."""

import uuid

from httpx import AsyncClient

from tests.conftest import auth_headers


class TestLearnerReads:
    async def test_dashboard(self, client: AsyncClient, mentor, learner, make_program):
        await make_program(mentor, [learner], tasks=4)
        response = await client.get("/learner/dashboard", headers=auth_headers(learner))
        assert response.status_code == 200
        data = response.json()
        assert len(data["active_programs"]) == 1
        assert data["pending_tasks"] == 0
        assert data["approved_tasks"] == 0
        assert data["completion_percentage"] == 0

    async def test_programs_lists_only_assigned(self, client: AsyncClient, mentor, learner, make_program):
        mine = await make_program(mentor, [learner])
        await make_program(mentor)
        response = await client.get("/learner/programs", headers=auth_headers(learner))
        assert [p["id"] for p in response.json()["items"]] == [mine["program_id"]]

    async def test_tasks_have_derived_status(self, client: AsyncClient, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner], tasks=2)
        response = await client.get(f"/learner/programs/{seeded['program_id']}/tasks", headers=auth_headers(learner))
        items = response.json()["items"]
        assert [t["id"] for t in items] == seeded["task_ids"]
        assert {t["submission_status"] for t in items} == {"not_submitted"}
        assert all(t["score"] is None for t in items)

    async def test_unassigned_program_is_403(self, client: AsyncClient, mentor, learner, make_program):
        seeded = await make_program(mentor)
        pid = seeded["program_id"]
        for path in ("milestones", "tasks", "progress"):
            response = await client.get(f"/learner/programs/{pid}/{path}", headers=auth_headers(learner))
            assert response.status_code == 403, path

    async def test_unknown_program_is_also_403(self, client: AsyncClient, learner):
        response = await client.get(f"/learner/programs/{uuid.uuid4()}/tasks", headers=auth_headers(learner))
        assert response.status_code == 403

    async def test_milestones_ordered(self, client: AsyncClient, admin, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner], tasks=0)
        pid = seeded["program_id"]
        for title, order in (("Second", 2), ("First", 1), ("Also first", 1)):
            await client.post(
                f"/admin/programs/{pid}/milestones",
                json={"title": title, "sort_order": order},
                headers=auth_headers(admin),
            )
        response = await client.get(f"/learner/programs/{pid}/milestones", headers=auth_headers(learner))
        assert [m["title"] for m in response.json()["items"]] == ["First", "Also first", "Second"]

    async def test_task_filter_by_milestone(self, client: AsyncClient, admin, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner], tasks=1)
        pid = seeded["program_id"]
        milestone = await client.post(
            f"/admin/programs/{pid}/milestones", json={"title": "Week 1"}, headers=auth_headers(admin)
        )
        mid = milestone.json()["milestone"]["id"]
        await client.post(
            f"/admin/programs/{pid}/tasks",
            json={"milestone_id": mid, "title": "In week 1", "deadline_at": "2030-01-01T00:00:00Z"},
            headers=auth_headers(admin),
        )
        response = await client.get(
            f"/learner/programs/{pid}/tasks", params={"milestone_id": mid}, headers=auth_headers(learner)
        )
        assert [t["title"] for t in response.json()["items"]] == ["In week 1"]

    async def test_task_detail(self, client: AsyncClient, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner])
        response = await client.get(f"/learner/tasks/{seeded['task_ids'][0]}", headers=auth_headers(learner))
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["submission_status"] == "not_submitted"
        assert task["submission_id"] is None

    async def test_task_detail_unassigned_is_404(self, client: AsyncClient, mentor, learner, make_program):
        seeded = await make_program(mentor)
        response = await client.get(f"/learner/tasks/{seeded['task_ids'][0]}", headers=auth_headers(learner))
        assert response.status_code == 404


class TestMentorReads:
    async def test_programs_with_counts(self, client: AsyncClient, mentor, make_user, make_program):
        learners = [await make_user("learner"), await make_user("learner")]
        await make_program(mentor, learners, tasks=3)
        response = await client.get("/mentor/programs", headers=auth_headers(mentor))
        [program] = response.json()["items"]
        assert program["learner_count"] == 2
        assert program["task_count"] == 3

    async def test_overview_of_owned_program(self, client: AsyncClient, mentor, learner, make_program):
        seeded = await make_program(mentor, [learner], tasks=2)
        response = await client.get(
            f"/mentor/programs/{seeded['program_id']}/overview", headers=auth_headers(mentor)
        )
        data = response.json()
        assert [lr["id"] for lr in data["learners"]] == [learner.id]
        assert all(t["submissions"] == 0 for t in data["tasks"])

    async def test_overview_of_other_mentors_program_is_404(self, client: AsyncClient, mentor, make_user, make_program):
        other = await make_user("mentor")
        seeded = await make_program(other)
        response = await client.get(
            f"/mentor/programs/{seeded['program_id']}/overview", headers=auth_headers(mentor)
        )
        assert response.status_code == 404

    async def test_dashboard(self, client: AsyncClient, mentor, learner, make_program):
        await make_program(mentor, [learner], tasks=2)
        await make_program(mentor, [learner], tasks=1)
        response = await client.get("/mentor/dashboard", headers=auth_headers(mentor))
        data = response.json()
        assert [lr["id"] for lr in data["assigned_learners"]] == [learner.id]
        assert data["pending_reviews"] == 0
        assert sorted(p["task_count"] for p in data["programs"]) == [1, 2]
