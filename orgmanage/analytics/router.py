"""Analytics router — revenue KPIs and the performance page.

Principals allowed ``analytics:organization`` aggregate over every
transaction; everyone else over their own.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.analytics import aggregation
from orgmanage.analytics.schemas import (
    DailyRevenue,
    PerformanceResponse,
    RegionRevenue,
    SummaryResponse,
)
from orgmanage.analytics.service import AnalyticsService
from orgmanage.auth.dependencies import Principal, get_current_principal
from orgmanage.common.constants import REVENUE_WINDOW_DAYS
from orgmanage.database import get_db

router = APIRouter(prefix="", tags=["analytics"])


def _scope_user(principal: Principal) -> Optional[uuid.UUID]:
    return None if principal.can(Action.analytics_organization) else principal.id


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    window: int = Query(REVENUE_WINDOW_DAYS, ge=1, le=366),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    scope_user = _scope_user(principal)
    records = await AnalyticsService.load_records(db, scope_user)
    return AnalyticsService.summary(
        records, "organization" if scope_user is None else "own", window,
    )


@router.get("/revenue-by-day", response_model=list[DailyRevenue])
async def revenue_by_day(
    window: int = Query(REVENUE_WINDOW_DAYS, ge=1, le=366),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    records = await AnalyticsService.load_records(db, _scope_user(principal))
    return aggregation.revenue_by_day(records, window)


@router.get("/revenue-by-region", response_model=list[RegionRevenue])
async def revenue_by_region(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    records = await AnalyticsService.load_records(db, _scope_user(principal))
    return aggregation.revenue_by_region(records)


@router.get("/performance", response_model=PerformanceResponse)
async def performance(
    days: int = Query(30, ge=1, le=366),
    user_id: Optional[uuid.UUID] = Query(None),
    compare_to: Optional[uuid.UUID] = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    records = await AnalyticsService.load_records(db, _scope_user(principal))
    return AnalyticsService.performance(records, days, user_id, compare_to)
