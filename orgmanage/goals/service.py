"""Goals service — assignment, listing and progress."""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.analytics.aggregation import goal_progress
from orgmanage.analytics.schemas import GoalRecord, TransactionRecord
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import NotificationType
from orgmanage.common.exceptions import NotFoundException, ValidationException
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.config import settings
from orgmanage.goals.models import Goal
from orgmanage.goals.schemas import GoalCreate, GoalOut, GoalStatusUpdate, GoalWithProgress
from orgmanage.notifications.dispatcher import notify
from orgmanage.profiles.models import Profile
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection
from orgmanage.sales.models import Transaction


def _publish(db: AsyncSession, change: ChangeType, goal: Goal) -> None:
    record = GoalOut.model_validate(goal).model_dump(mode="json")
    record_change(db, Collection.goals, change, record, owner_id=goal.user_id)


class GoalService:

    @staticmethod
    async def create(
        db: AsyncSession,
        creator_id: uuid.UUID,
        data: GoalCreate,
    ) -> Goal:
        """Assign a goal to ``data.user_id`` and notify them."""
        owner = await db.get(Profile, data.user_id)
        if owner is None or not owner.is_active:
            raise ValidationException({"user_id": ["Unknown or inactive principal."]})

        goal = Goal(
            user_id=data.user_id,
            created_by=creator_id,
            target_amount=data.target_amount,
            period=data.period.value,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        db.add(goal)
        await db.flush()
        _publish(db, ChangeType.INSERT, goal)

        await create_audit_entry(
            db,
            action="create",
            entity_type="goal",
            entity_id=goal.id,
            actor_id=creator_id,
            new_values={
                "user_id": str(data.user_id),
                "target_amount": str(data.target_amount),
                "period": data.period.value,
            },
        )

        await notify(
            db,
            [data.user_id],
            NotificationType.goal,
            "New goal assigned",
            f"Target {settings.CURRENCY_SYMBOL}{data.target_amount:,.2f} "
            f"({data.period.value}, {data.start_date} to {data.end_date})",
            related_id=goal.id,
            exclude=creator_id,
        )
        return goal

    @staticmethod
    async def get(db: AsyncSession, goal_id: uuid.UUID) -> Goal:
        goal = await db.get(Goal, goal_id)
        if goal is None:
            raise NotFoundException("Goal", goal_id)
        return goal

    @staticmethod
    async def list_goals(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> tuple[list[Goal], PaginationMeta]:
        query = select(Goal).order_by(Goal.created_at.desc(), Goal.id.desc())
        if user_id:
            query = query.where(Goal.user_id == user_id)
        if status:
            query = query.where(Goal.status == status)
        return await paginate(db, query, pagination)

    @staticmethod
    async def set_status(
        db: AsyncSession,
        goal_id: uuid.UUID,
        actor_id: uuid.UUID,
        data: GoalStatusUpdate,
    ) -> Goal:
        goal = await GoalService.get(db, goal_id)
        old_status = goal.status
        if old_status == data.status.value:
            return goal
        goal.status = data.status.value
        await db.flush()
        _publish(db, ChangeType.UPDATE, goal)

        await create_audit_entry(
            db,
            action="update",
            entity_type="goal",
            entity_id=goal.id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": goal.status},
        )
        return goal

    @staticmethod
    async def with_progress(db: AsyncSession, goals: list[Goal]) -> list[GoalWithProgress]:
        """Attach progress computed from each owner's transactions."""
        owners = {g.user_id for g in goals}
        transactions: list[TransactionRecord] = []
        if owners:
            result = await db.execute(
                select(Transaction).where(Transaction.user_id.in_(owners)),
            )
            transactions = [
                TransactionRecord.model_validate(t) for t in result.scalars().all()
            ]

        return [
            GoalWithProgress(
                **GoalOut.model_validate(goal).model_dump(),
                progress=goal_progress(GoalRecord.model_validate(goal), transactions),
            )
            for goal in goals
        ]
