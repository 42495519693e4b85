"""Analytics schemas — validated records in, KPI payloads out."""

import datetime as dt
import uuid
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


# ═════════════════════════════════════════════════════════════════════
# Inputs (rows validated before aggregation)
# ═════════════════════════════════════════════════════════════════════


class TransactionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: uuid.UUID
    date: dt.date
    region: str
    sale_amount: Decimal


class GoalRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: uuid.UUID
    target_amount: Decimal
    start_date: dt.date
    end_date: dt.date


# ═════════════════════════════════════════════════════════════════════
# Outputs
# ═════════════════════════════════════════════════════════════════════


class DailyRevenue(BaseModel):
    date: dt.date
    revenue: Decimal


class RegionRevenue(BaseModel):
    region: str
    revenue: Decimal


class GoalProgress(BaseModel):
    current: Decimal
    target: Decimal
    progress: float
    remaining: Decimal
    raw_progress: float


class PerformerStats(BaseModel):
    user_id: uuid.UUID
    total_revenue: Decimal
    deals: int
    avg_deal: Decimal


class ComparisonPoint(BaseModel):
    date: dt.date
    revenue: Decimal
    comparison: Optional[Decimal] = None


class SummaryResponse(BaseModel):
    scope: str
    currency: str
    total_revenue: Decimal
    transaction_count: int
    average_transaction: Decimal
    revenue_by_day: List[DailyRevenue]
    revenue_by_region: List[RegionRevenue]


class PerformanceResponse(BaseModel):
    days: int
    top_performers: List[PerformerStats]
    series: List[ComparisonPoint]
