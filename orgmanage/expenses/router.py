"""Expenses router — submission and finance approval of expense claims.

All endpoints require authentication.
"""

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
from orgmanage.expenses.schemas import ExpenseCreate, ExpenseListResponse, ExpenseOut
from orgmanage.expenses.service import ExpenseService
from orgmanage.leave.schemas import ReviewDecision
from orgmanage.realtime.events import Collection

router = APIRouter(prefix="", tags=["expenses"])


def _own_only(principal: Principal) -> bool:
    return collection_scope(principal.roles, Collection.expenses) is Scope.own


# ── POST / ───────────────────────────────────────────────────────────

@router.post("/", response_model=ExpenseOut, status_code=201)
async def submit_expense(
    body: ExpenseCreate,
    principal: Principal = Depends(require_action(Action.expense_submit)),
    db: AsyncSession = Depends(get_db),
):
    """Submit a new expense claim."""
    expense = await ExpenseService.submit(db, principal.profile, body)
    return ExpenseOut.model_validate(expense)


# ── GET / ────────────────────────────────────────────────────────────

@router.get("/", response_model=ExpenseListResponse)
async def list_expenses(
    mine: bool = Query(False),
    status: Optional[ReviewStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Finance sees every claim; everyone else sees their own."""
    rows, meta = await ExpenseService.list_expenses(
        db,
        pagination,
        user_id=principal.id if mine or _own_only(principal) else None,
        status=status.value if status else None,
    )
    return ExpenseListResponse(
        data=[ExpenseOut.model_validate(e) for e in rows],
        meta=meta,
    )


# ── GET /summary ─────────────────────────────────────────────────────

@router.get("/summary")
async def expense_summary(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Totals per status over the claims the caller may see."""
    return await ExpenseService.summary(
        db, user_id=principal.id if _own_only(principal) else None,
    )


# ── GET /{id} ────────────────────────────────────────────────────────

@router.get("/{expense_id}", response_model=ExpenseOut)
async def get_expense(
    expense_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    expense = await ExpenseService.get_expense(db, expense_id)
    if expense.user_id != principal.id and _own_only(principal):
        raise ForbiddenException("You can only view your own expenses.")
    return ExpenseOut.model_validate(expense)


# ── POST /{id}/review ────────────────────────────────────────────────

@router.post("/{expense_id}/review", response_model=ExpenseOut)
async def review_expense(
    expense_id: uuid.UUID,
    body: ReviewDecision,
    principal: Principal = Depends(require_action(Action.expense_review)),
    db: AsyncSession = Depends(get_db),
):
    expense = await ExpenseService.review(db, expense_id, principal.id, body.status)
    return ExpenseOut.model_validate(expense)
