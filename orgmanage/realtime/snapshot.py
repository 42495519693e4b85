"""Full-collection snapshots used for the initial fetch and resyncs."""

from __future__ import annotations

import uuid
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from orgmanage.announcements.models import Announcement
from orgmanage.announcements.schemas import AnnouncementOut
from orgmanage.common.exceptions import PersistenceError
from orgmanage.expenses.models import Expense
from orgmanage.expenses.schemas import ExpenseOut
from orgmanage.goals.models import Goal
from orgmanage.goals.schemas import GoalOut
from orgmanage.it.models import ITAsset, ITTicket
from orgmanage.it.schemas import AssetOut, TicketOut
from orgmanage.leave.models import LeaveRequest
from orgmanage.leave.schemas import LeaveRequestOut
from orgmanage.notifications.models import Notification
from orgmanage.notifications.schemas import NotificationResponse
from orgmanage.realtime.events import Collection
from orgmanage.sales.models import Transaction
from orgmanage.sales.schemas import TransactionOut


class CollectionSource(NamedTuple):
    model: type
    schema: type[BaseModel]
    owner_column: str


SOURCES: dict[Collection, CollectionSource] = {
    Collection.transactions: CollectionSource(Transaction, TransactionOut, "user_id"),
    Collection.notifications: CollectionSource(Notification, NotificationResponse, "user_id"),
    Collection.leave_requests: CollectionSource(LeaveRequest, LeaveRequestOut, "user_id"),
    Collection.expenses: CollectionSource(Expense, ExpenseOut, "user_id"),
    Collection.it_assets: CollectionSource(ITAsset, AssetOut, "assigned_to"),
    Collection.it_tickets: CollectionSource(ITTicket, TicketOut, "created_by"),
    Collection.goals: CollectionSource(Goal, GoalOut, "user_id"),
    Collection.announcements: CollectionSource(Announcement, AnnouncementOut, "created_by"),
}


class SnapshotFetcher:
    """Callable ``(collection, owner_id) -> rows`` for :class:`SyncBridge`."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self.session_factory = session_factory

    async def __call__(
        self,
        collection: Collection,
        owner_id: Optional[uuid.UUID] = None,
    ) -> list[dict[str, Any]]:
        source = SOURCES[Collection(collection)]
        query = select(source.model).order_by(
            source.model.created_at.desc(), source.model.id.desc(),
        )
        if owner_id is not None:
            query = query.where(getattr(source.model, source.owner_column) == owner_id)
        try:
            async with self.session_factory() as db:
                rows = (await db.execute(query)).scalars().all()
                return [
                    source.schema.model_validate(row).model_dump(mode="json")
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise PersistenceError(detail=f"Could not load {collection.value}.") from exc
