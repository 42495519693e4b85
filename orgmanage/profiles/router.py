"""Profile router — the caller's own profile and the directory."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.database import get_db
from orgmanage.profiles.schemas import ProfileOut, ProfileUpdate
from orgmanage.profiles.service import ProfileService

router = APIRouter(prefix="", tags=["profiles"])


@router.get("/me", response_model=ProfileOut)
async def get_own_profile(principal: Principal = Depends(get_current_principal)):
    return ProfileOut.model_validate(principal.profile)


@router.patch("/me", response_model=ProfileOut)
async def update_own_profile(
    body: ProfileUpdate,
    principal: Principal = Depends(require_action(Action.profile_update_own)),
    db: AsyncSession = Depends(get_db),
):
    profile = await ProfileService.update(
        db, principal.profile, principal.id, body.model_dump(exclude_unset=True),
    )
    return ProfileOut.model_validate(profile)


@router.get("/", response_model=list[ProfileOut])
async def list_profiles(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Active principals, used for goal assignment and comparison pickers."""
    rows = await ProfileService.list_with_roles(db)
    return [ProfileOut.model_validate(p) for p, _ in rows]
