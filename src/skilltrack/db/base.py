"""Declarative base and portable column types."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase

# Native uuid/jsonb on PostgreSQL, plain text/json elsewhere (SQLite in tests).
UUIDStr = String(36).with_variant(UUID(as_uuid=False), "postgresql")
JSONDoc = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass
