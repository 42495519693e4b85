"""Goals router — sales targets with embedded progress."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.common.constants import GoalStatus
from orgmanage.common.pagination import PaginationParams
from orgmanage.database import get_db
from orgmanage.goals.schemas import (
    GoalCreate,
    GoalListResponse,
    GoalStatusUpdate,
    GoalWithProgress,
)
from orgmanage.goals.service import GoalService

router = APIRouter(prefix="", tags=["goals"])


@router.post("/", response_model=GoalWithProgress, status_code=201)
async def create_goal(
    body: GoalCreate,
    principal: Principal = Depends(require_action(Action.goal_create)),
    db: AsyncSession = Depends(get_db),
):
    goal = await GoalService.create(db, principal.id, body)
    (result,) = await GoalService.with_progress(db, [goal])
    return result


@router.get("/", response_model=GoalListResponse)
async def list_goals(
    mine: bool = Query(False),
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[GoalStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    goals, meta = await GoalService.list_goals(
        db,
        pagination,
        user_id=principal.id if mine else user_id,
        status=status.value if status else None,
    )
    return GoalListResponse(data=await GoalService.with_progress(db, goals), meta=meta)


@router.get("/{goal_id}", response_model=GoalWithProgress)
async def get_goal(
    goal_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    goal = await GoalService.get(db, goal_id)
    (result,) = await GoalService.with_progress(db, [goal])
    return result


@router.patch("/{goal_id}/status", response_model=GoalWithProgress)
async def update_goal_status(
    goal_id: uuid.UUID,
    body: GoalStatusUpdate,
    principal: Principal = Depends(require_action(Action.goal_create)),
    db: AsyncSession = Depends(get_db),
):
    goal = await GoalService.set_status(db, goal_id, principal.id, body)
    (result,) = await GoalService.with_progress(db, [goal])
    return result
