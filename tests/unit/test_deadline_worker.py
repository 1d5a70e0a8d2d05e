"""Tests for the arq deadline worker."""

from datetime import timedelta

import pytest

from skilltrack.workers import deadlines as worker
from skilltrack.workers.settings import WorkerSettings


class TestScanMinutes:
    @pytest.mark.parametrize(
        ("interval", "expected"),
        [
            (10, {0, 10, 20, 30, 40, 50}),
            (7, {0, 7, 14, 21, 28, 35, 42, 49, 56}),
            (0, set(range(60))),
            (-3, set(range(60))),
            (90, {0}),
        ],
    )
    def test_minutes(self, interval, expected):
        assert worker.scan_minutes(interval) == expected


class TestScanDeadlines:
    async def test_inserts_then_dedups(self, database, mentor, learner, make_program):
        await make_program(mentor, [learner], deadline_in=timedelta(hours=2))
        ctx = {"db": database}
        assert await worker.scan_deadlines(ctx) == 1
        assert await worker.scan_deadlines(ctx) == 0

    async def test_startup_and_shutdown_own_the_database(self, settings, monkeypatch):
        monkeypatch.setattr(worker, "get_settings", lambda: settings)
        ctx = {}
        await worker.startup(ctx)
        assert ctx["db"].engine.url.get_backend_name() == "sqlite"
        await ctx["db"].create_all()
        assert await worker.scan_deadlines(ctx) == 0
        await worker.shutdown(ctx)


def test_worker_settings_register_the_scan():
    assert WorkerSettings.functions == [worker.scan_deadlines]
    assert len(WorkerSettings.cron_jobs) == 1
    assert WorkerSettings.max_jobs == 1
