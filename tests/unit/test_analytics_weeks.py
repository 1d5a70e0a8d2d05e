"""Tests for weekly bucketing used by completion trends."""

from datetime import datetime, timezone

from skilltrack.submissions.analytics import week_start


class TestWeekStart:
    def test_monday_midnight(self):
        # 2026-10-21 is a Wednesday.
        ts = datetime(2026, 10, 21, 15, 30, tzinfo=timezone.utc)
        assert week_start(ts) == datetime(2026, 10, 19, tzinfo=timezone.utc)

    def test_monday_is_its_own_week(self):
        ts = datetime(2026, 10, 19, 0, 0, 1, tzinfo=timezone.utc)
        assert week_start(ts) == datetime(2026, 10, 19, tzinfo=timezone.utc)

    def test_naive_taken_as_utc(self):
        assert week_start(datetime(2026, 10, 25, 23, 59)) == datetime(2026, 10, 19, tzinfo=timezone.utc)
