"""SQL functions that differ between PostgreSQL and SQLite.

Used by set-based statements (``INSERT ... SELECT``) where Python-side column
defaults do not apply.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

from skilltrack.db.base import UUIDStr


class random_uuid(FunctionElement):  # noqa: N801
    """A fresh version-4 UUID rendered as text."""

    type = UUIDStr
    inherit_cache = True
    name = "random_uuid"


@compiles(random_uuid, "postgresql")
def _random_uuid_pg(_element: random_uuid, _compiler: Any, **_kw: Any) -> str:  # noqa: ANN401
    return "gen_random_uuid()"


@compiles(random_uuid, "sqlite")
def _random_uuid_sqlite(_element: random_uuid, _compiler: Any, **_kw: Any) -> str:  # noqa: ANN401
    return (
        "(lower(hex(randomblob(4))) || '-' || lower(hex(randomblob(2))) || '-4' || "
        "substr(lower(hex(randomblob(2))), 2) || '-' || "
        "substr('89ab', 1 + (abs(random()) % 4), 1) || "
        "substr(lower(hex(randomblob(2))), 2) || '-' || lower(hex(randomblob(6))))"
    )


class json_build_object(FunctionElement):  # noqa: N801
    """``json_build_object(k1, v1, ...)``; keys should be literal columns."""

    type = JSON()
    inherit_cache = True
    name = "json_build_object"


@compiles(json_build_object)
def _json_build_object_default(element: json_build_object, compiler: Any, **kw: Any) -> str:  # noqa: ANN401
    return f"json_object({compiler.process(element.clauses, **kw)})"


@compiles(json_build_object, "postgresql")
def _json_build_object_pg(element: json_build_object, compiler: Any, **kw: Any) -> str:  # noqa: ANN401
    return f"jsonb_build_object({compiler.process(element.clauses, **kw)})"
