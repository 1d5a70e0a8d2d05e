"""Admin user management: /admin/users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skilltrack.auth.dependencies import Principal, require_admin
from skilltrack.auth.schemas import CreateUserRequest, Role, UserResponse
from skilltrack.auth.service import create_user, list_users
from skilltrack.database import get_session
from skilltrack.pagination import Page, get_page

router = APIRouter(prefix="/admin/users", tags=["Admin"])


@router.get("")
async def list_all_users(
    role: Role | None = Query(None),
    page: Page = Depends(get_page),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Users, newest first, optionally filtered by role."""
    users = await list_users(db, page, role=role)
    return page.wrap([UserResponse.model_validate(u).model_dump() for u in users])


@router.post("", status_code=201)
async def create_any_user(
    body: CreateUserRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> dict:
    user = await create_user(
        db,
        admin.sub,
        email=body.email,
        password=body.password,
        role=body.role,
        full_name=body.full_name,
    )
    return {"user": UserResponse.model_validate(user).model_dump()}
