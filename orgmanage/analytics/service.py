"""Analytics service — loads and validates transactions for aggregation."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.analytics import aggregation
from orgmanage.analytics.schemas import (
    PerformanceResponse,
    SummaryResponse,
    TransactionRecord,
)
from orgmanage.common.constants import REVENUE_WINDOW_DAYS, TOP_PERFORMERS_LIMIT
from orgmanage.config import settings
from orgmanage.sales.models import Transaction


class AnalyticsService:

    @staticmethod
    async def load_records(
        db: AsyncSession,
        user_id: Optional[uuid.UUID] = None,
    ) -> list[TransactionRecord]:
        """Transactions validated into records; *user_id* None means the whole organisation."""
        query = select(Transaction)
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)
        result = await db.execute(query)
        return [TransactionRecord.model_validate(t) for t in result.scalars().all()]

    @staticmethod
    def summary(
        records: list[TransactionRecord],
        scope: str,
        window: int = REVENUE_WINDOW_DAYS,
    ) -> SummaryResponse:
        return SummaryResponse(
            scope=scope,
            currency=settings.CURRENCY_SYMBOL,
            total_revenue=aggregation.total_revenue(records),
            transaction_count=len(records),
            average_transaction=aggregation.average_transaction(records),
            revenue_by_day=aggregation.revenue_by_day(records, window),
            revenue_by_region=aggregation.revenue_by_region(records),
        )

    @staticmethod
    def performance(
        records: list[TransactionRecord],
        days: int,
        user_id: Optional[uuid.UUID] = None,
        compare_to: Optional[uuid.UUID] = None,
    ) -> PerformanceResponse:
        recent = aggregation.filter_recent(records, days)
        return PerformanceResponse(
            days=days,
            top_performers=aggregation.top_performers(recent, TOP_PERFORMERS_LIMIT),
            series=aggregation.revenue_comparison(
                recent, user_id, compare_to, window=days,
            ),
        )
