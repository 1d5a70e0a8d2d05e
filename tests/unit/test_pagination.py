"""Tests for limit/offset clamping."""

import pytest

from skilltrack.pagination import DEFAULT_LIMIT, MAX_LIMIT, Page, clamp_limit, clamp_offset, get_page


class TestClampLimit:
    @pytest.mark.parametrize(
        ("requested", "expected"),
        [(None, DEFAULT_LIMIT), (0, 1), (1, 1), (50, 50), (51, MAX_LIMIT), (1000, MAX_LIMIT), (-5, 1)],
    )
    def test_clamp(self, requested, expected):
        assert clamp_limit(requested) == expected


class TestClampOffset:
    @pytest.mark.parametrize(("requested", "expected"), [(None, 0), (0, 0), (-1, 0), (-100, 0), (30, 30)])
    def test_clamp(self, requested, expected):
        assert clamp_offset(requested) == expected


def test_get_page_clamps_both():
    assert get_page(limit=1000, offset=-3) == Page(limit=50, offset=0)


def test_wrap_shape():
    assert Page(limit=5, offset=10).wrap([1, 2]) == {"items": [1, 2], "limit": 5, "offset": 10}
