"""Leave router — submit, list and review leave requests."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action, Scope, collection_scope
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.common.constants import ReviewStatus
from orgmanage.common.exceptions import ForbiddenException
from orgmanage.common.pagination import PaginationParams
from orgmanage.database import get_db
from orgmanage.leave.schemas import (
    LeaveRequestCreate,
    LeaveRequestListResponse,
    LeaveRequestOut,
    ReviewDecision,
)
from orgmanage.leave.service import LeaveService
from orgmanage.realtime.events import Collection

router = APIRouter(prefix="", tags=["leave"])


# ── POST / ───────────────────────────────────────────────────────────

@router.post("/", response_model=LeaveRequestOut, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    principal: Principal = Depends(require_action(Action.leave_request)),
    db: AsyncSession = Depends(get_db),
):
    leave = await LeaveService.create_request(db, principal.profile, body)
    return LeaveRequestOut.model_validate(leave)


# ── GET / ────────────────────────────────────────────────────────────

@router.get("/", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    mine: bool = Query(False),
    status: Optional[ReviewStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Reviewers see every request; everyone else sees their own."""
    own_only = mine or collection_scope(principal.roles, Collection.leave_requests) is Scope.own
    rows, meta = await LeaveService.list_requests(
        db,
        pagination,
        user_id=principal.id if own_only else None,
        status=status.value if status else None,
    )
    return LeaveRequestListResponse(
        data=[LeaveRequestOut.model_validate(r) for r in rows],
        meta=meta,
    )


# ── GET /{id} ────────────────────────────────────────────────────────

@router.get("/{leave_id}", response_model=LeaveRequestOut)
async def get_leave_request(
    leave_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    leave = await LeaveService.get_request(db, leave_id)
    if leave.user_id != principal.id and not principal.can(Action.leave_review):
        raise ForbiddenException("You can only view your own leave requests.")
    return LeaveRequestOut.model_validate(leave)


# ── POST /{id}/review ────────────────────────────────────────────────

@router.post("/{leave_id}/review", response_model=LeaveRequestOut)
async def review_leave_request(
    leave_id: uuid.UUID,
    body: ReviewDecision,
    principal: Principal = Depends(require_action(Action.leave_review)),
    db: AsyncSession = Depends(get_db),
):
    leave = await LeaveService.review(db, leave_id, principal.id, body.status)
    return LeaveRequestOut.model_validate(leave)
