"""Offset pagination shared by every list endpoint.

Out-of-range values are clamped rather than rejected: ``limit`` to
``[1, MAX_LIMIT]`` and ``offset`` to ``>= 0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Query

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def clamp_offset(offset: int | None) -> int:
    return max(offset or 0, 0)


@dataclass(frozen=True)
class Page:
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def wrap(self, items: list[Any]) -> dict[str, Any]:
        """Build the ``{items, limit, offset}`` response body."""
        return {"items": items, "limit": self.limit, "offset": self.offset}


def get_page(
    limit: int | None = Query(None),
    offset: int | None = Query(None),
) -> Page:
    """FastAPI dependency producing a clamped ``Page``."""
    return Page(limit=clamp_limit(limit), offset=clamp_offset(offset))
