"""Admin router — principal directory with roles, profile and role edits."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.admin.schemas import AdminUserListResponse, AdminUserUpdate
from orgmanage.admin.service import AdminService
from orgmanage.auth.dependencies import Principal, require_action
from orgmanage.auth.provider import AuthProvider
from orgmanage.auth.router import get_auth_provider
from orgmanage.auth.service import get_roles
from orgmanage.database import get_db
from orgmanage.profiles.schemas import ProfileOut, ProfileWithRoles
from orgmanage.profiles.service import ProfileService

router = APIRouter(prefix="", tags=["admin"])

_admin = require_action(Action.admin_manage_users)


def _with_roles(profile, roles) -> ProfileWithRoles:
    return ProfileWithRoles(
        **ProfileOut.model_validate(profile).model_dump(),
        roles=sorted(r.value for r in roles),
    )


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    include_inactive: bool = Query(False),
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    rows = await ProfileService.list_with_roles(db, include_inactive=include_inactive)
    return AdminUserListResponse(
        data=[_with_roles(p, roles) for p, roles in rows],
        total=len(rows),
    )


@router.get("/users/{user_id}", response_model=ProfileWithRoles)
async def get_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(_admin),
    db: AsyncSession = Depends(get_db),
):
    profile = await ProfileService.get(db, user_id)
    return _with_roles(profile, await get_roles(db, user_id))


@router.patch("/users/{user_id}", response_model=ProfileWithRoles)
async def update_user(
    user_id: uuid.UUID,
    body: AdminUserUpdate,
    principal: Principal = Depends(_admin),
    provider: AuthProvider = Depends(get_auth_provider),
    db: AsyncSession = Depends(get_db),
):
    profile, roles = await AdminService.update_user(db, provider, user_id, principal.id, body)
    return _with_roles(profile, roles)
