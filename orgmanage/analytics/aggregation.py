"""Pure revenue and goal aggregation over validated records.

Nothing here performs I/O; callers load rows, validate them into
``TransactionRecord`` / ``GoalRecord`` and pass them in.
"""

from __future__ import annotations

import datetime as dt
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from orgmanage.analytics.schemas import (
    ComparisonPoint,
    DailyRevenue,
    GoalProgress,
    GoalRecord,
    PerformerStats,
    RegionRevenue,
    TransactionRecord,
)
from orgmanage.common.constants import REVENUE_WINDOW_DAYS, TOP_PERFORMERS_LIMIT

_ZERO = Decimal("0")


# ── Totals ──────────────────────────────────────────────────────────

def total_revenue(transactions: Iterable[TransactionRecord]) -> Decimal:
    return sum((t.sale_amount for t in transactions), _ZERO)


def average_transaction(transactions: Sequence[TransactionRecord]) -> Decimal:
    if not transactions:
        return _ZERO
    return total_revenue(transactions) / len(transactions)


# ── Grouping ────────────────────────────────────────────────────────

def revenue_by_day(
    transactions: Iterable[TransactionRecord],
    window: int = REVENUE_WINDOW_DAYS,
) -> list[DailyRevenue]:
    """Revenue per calendar date, ascending, limited to the last *window* dates.

    Only dates that have at least one transaction appear; missing days are
    not filled with zero, so a sparse month yields fewer than *window* points.
    """
    totals: dict[dt.date, Decimal] = defaultdict(lambda: _ZERO)
    for t in transactions:
        totals[t.date] += t.sale_amount
    days = sorted(totals)[-window:] if window > 0 else []
    return [DailyRevenue(date=d, revenue=totals[d]) for d in days]


def revenue_by_region(transactions: Iterable[TransactionRecord]) -> list[RegionRevenue]:
    totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for t in transactions:
        totals[t.region] += t.sale_amount
    # Region name breaks ties so equal totals keep a stable order.
    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [RegionRevenue(region=r, revenue=v) for r, v in ordered]


# ── Goals ───────────────────────────────────────────────────────────

def goal_progress(
    goal: GoalRecord,
    transactions: Iterable[TransactionRecord],
) -> GoalProgress:
    """Progress of *goal* from its owner's transactions inside the date range.

    Both range ends are inclusive. ``progress`` is capped at 100 for display;
    ``raw_progress`` keeps the uncapped figure.
    """
    current = total_revenue(
        t for t in transactions
        if t.user_id == goal.user_id and goal.start_date <= t.date <= goal.end_date
    )
    target = goal.target_amount
    raw = float(current / target * 100) if target > 0 else 0.0
    return GoalProgress(
        current=current,
        target=target,
        progress=min(raw, 100.0),
        remaining=max(target - current, _ZERO),
        raw_progress=raw,
    )


# ── Performance page ────────────────────────────────────────────────

def filter_recent(
    transactions: Iterable[TransactionRecord],
    days: int,
    today: Optional[dt.date] = None,
) -> list[TransactionRecord]:
    """Keep transactions dated within the last *days* days (inclusive of today)."""
    today = today or dt.date.today()
    cutoff = today - dt.timedelta(days=days)
    return [t for t in transactions if t.date >= cutoff]


def top_performers(
    transactions: Iterable[TransactionRecord],
    limit: int = TOP_PERFORMERS_LIMIT,
) -> list[PerformerStats]:
    revenue: dict[uuid.UUID, Decimal] = defaultdict(lambda: _ZERO)
    deals: dict[uuid.UUID, int] = defaultdict(int)
    for t in transactions:
        revenue[t.user_id] += t.sale_amount
        deals[t.user_id] += 1

    stats = [
        PerformerStats(
            user_id=user_id,
            total_revenue=total,
            deals=deals[user_id],
            avg_deal=total / deals[user_id],
        )
        for user_id, total in revenue.items()
    ]
    stats.sort(key=lambda s: (-s.total_revenue, str(s.user_id)))
    return stats[:limit]


def revenue_comparison(
    transactions: Sequence[TransactionRecord],
    user_id: Optional[uuid.UUID] = None,
    comparison_user_id: Optional[uuid.UUID] = None,
    window: int = REVENUE_WINDOW_DAYS,
) -> list[ComparisonPoint]:
    """Daily revenue for *user_id* (everyone when None) beside an optional second principal."""
    primary = [t for t in transactions if user_id is None or t.user_id == user_id]
    series = revenue_by_day(primary, window)
    if comparison_user_id is None:
        return [ComparisonPoint(date=p.date, revenue=p.revenue) for p in series]

    other: dict[dt.date, Decimal] = defaultdict(lambda: _ZERO)
    for t in transactions:
        if t.user_id == comparison_user_id:
            other[t.date] += t.sale_amount
    return [
        ComparisonPoint(date=p.date, revenue=p.revenue, comparison=other.get(p.date, _ZERO))
        for p in series
    ]
