"""
Authentication business logic.

Handles user creation, credential checks and the password reset flow.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from skilltrack.audit.service import record
from skilltrack.auth.password import check_needs_rehash, hash_password, verify_password
from skilltrack.config import get_settings
from skilltrack.database import transaction
from skilltrack.db.models import PasswordReset, User
from skilltrack.errors import EmailConflict, InvalidCredentials, InvalidOrExpiredToken
from skilltrack.pagination import Page

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


def _hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def user_has_role(db: AsyncSession, user_id: str, role: str) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id, User.role == role))
    return result.first() is not None


async def list_users(db: AsyncSession, page: Page, role: str | None = None) -> list[User]:
    """Newest first, optionally filtered by role."""
    stmt = select(User).order_by(User.created_at.desc()).limit(page.limit).offset(page.offset)
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# User creation
# ---------------------------------------------------------------------------


async def _insert_user(db: AsyncSession, email: str, password: str, role: str, full_name: str) -> User:
    """
    Insert a user inside the caller's transaction.

    Raises:
        EmailConflict: If the email is taken. The unique index is the source of
            truth; the lookup only avoids hashing for the common case.
    """
    email = email.lower().strip()
    if await get_user_by_email(db, email) is not None:
        raise EmailConflict()

    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role,
        full_name=full_name,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        raise EmailConflict() from e
    return user


async def signup(db: AsyncSession, full_name: str, email: str, password: str) -> User:
    """Self-service signup. The role is always ``learner``; audited with no actor."""
    async with transaction(db):
        user = await _insert_user(db, email, password, "learner", full_name)
        await record(
            db,
            actor_user_id=None,
            action="learner_signup",
            entity_type="user",
            entity_id=user.id,
            meta={"email": user.email, "role": user.role},
        )
    logger.info("user_created", user_id=user.id, role=user.role, method="signup")
    return user


async def create_user(
    db: AsyncSession,
    actor_id: str,
    email: str,
    password: str,
    role: str,
    full_name: str,
) -> User:
    """Admin-side creation of a user with any role."""
    async with transaction(db):
        user = await _insert_user(db, email, password, role, full_name)
        await record(
            db,
            actor_user_id=actor_id,
            action="admin.create_user",
            entity_type="user",
            entity_id=user.id,
            meta={"role": user.role},
        )
    logger.info("user_created", user_id=user.id, role=user.role, method="admin", actor_id=actor_id)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """
    Check email + password.

    Raises:
        InvalidCredentials: Unknown email or wrong password (indistinguishable).
    """
    user = await get_user_by_email(db, email)
    password_ok = verify_password(password, user.password_hash if user else None)
    if user is None or not password_ok:
        raise InvalidCredentials()

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.commit()
        logger.info("password_rehashed", user_id=user.id)

    return user


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def create_reset_token(db: AsyncSession, user_id: str, ttl_minutes: int | None = None) -> str:
    """
    Create a password reset token, retiring any unused ones for the user.

    Returns the raw token to send to the user; only its hash is stored.
    """
    ttl = ttl_minutes if ttl_minutes is not None else get_settings().reset_token_ttl_minutes
    now = datetime.now(timezone.utc)
    raw_token = secrets.token_hex(32)

    async with transaction(db):
        await db.execute(
            update(PasswordReset)
            .where(PasswordReset.user_id == user_id)
            .where(PasswordReset.used_at.is_(None))
            .values(used_at=now)
        )
        db.add(
            PasswordReset(
                user_id=user_id,
                token_hash=_hash_token(raw_token),
                created_at=now,
                expires_at=now + timedelta(minutes=ttl),
            )
        )
    return raw_token


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> str:
    """
    Consume a reset token and set a new password. Returns the user id.

    Marking the token used and updating the hash commit together; the
    conditional ``used_at IS NULL`` update means two concurrent resets with
    the same token cannot both succeed.

    Raises:
        InvalidOrExpiredToken: No unused, unexpired token matches.
    """
    now = datetime.now(timezone.utc)
    new_hash = hash_password(new_password)

    async with transaction(db):
        result = await db.execute(
            select(PasswordReset.id, PasswordReset.user_id)
            .where(PasswordReset.token_hash == _hash_token(raw_token))
            .where(PasswordReset.used_at.is_(None))
            .where(PasswordReset.expires_at > now)
            .order_by(PasswordReset.created_at.desc())
            .limit(1)
        )
        row = result.first()
        if row is None:
            raise InvalidOrExpiredToken()

        claimed = await db.execute(
            update(PasswordReset)
            .where(PasswordReset.id == row.id, PasswordReset.used_at.is_(None))
            .values(used_at=now)
        )
        if claimed.rowcount != 1:
            raise InvalidOrExpiredToken()

        await db.execute(update(User).where(User.id == row.user_id).values(password_hash=new_hash))

    logger.info("password_reset_complete", user_id=row.user_id)
    return row.user_id
