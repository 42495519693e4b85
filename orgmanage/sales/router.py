"""Sales router — transaction entry and listing."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.common.constants import (
    CUSTOMER_SEGMENTS,
    LEAD_SOURCES,
    REGIONS,
    TransactionStatus,
)
from orgmanage.common.pagination import PaginationParams
from orgmanage.database import get_db
from orgmanage.sales.schemas import (
    TransactionCreate,
    TransactionListResponse,
    TransactionOptions,
    TransactionOut,
)
from orgmanage.sales.service import TransactionService

router = APIRouter(prefix="", tags=["transactions"])


@router.post("/", response_model=TransactionOut, status_code=201)
async def create_transaction(
    body: TransactionCreate,
    principal: Principal = Depends(require_action(Action.transaction_create)),
    db: AsyncSession = Depends(get_db),
):
    """Record a sale owned by the caller."""
    transaction = await TransactionService.create(db, principal.id, body)
    return TransactionOut.model_validate(transaction)


@router.get("/", response_model=TransactionListResponse)
async def list_transactions(
    mine: bool = Query(False, description="Only the caller's transactions"),
    user_id: Optional[uuid.UUID] = Query(None),
    region: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    rows, meta = await TransactionService.list_transactions(
        db,
        pagination,
        user_id=principal.id if mine else user_id,
        region=region,
        from_date=from_date,
        to_date=to_date,
    )
    return TransactionListResponse(
        data=[TransactionOut.model_validate(t) for t in rows],
        meta=meta,
    )


@router.get("/options", response_model=TransactionOptions)
async def transaction_options(principal: Principal = Depends(get_current_principal)):
    return TransactionOptions(
        regions=REGIONS,
        customer_segments=CUSTOMER_SEGMENTS,
        lead_sources=LEAD_SOURCES,
        statuses=[s.value for s in TransactionStatus],
    )
