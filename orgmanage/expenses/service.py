"""Expenses service layer — submission + finance approval for expense claims."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import NotificationType, ReviewStatus
from orgmanage.common.exceptions import ConflictError, NotFoundException
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.config import settings
from orgmanage.expenses.models import Expense
from orgmanage.expenses.schemas import ExpenseCreate, ExpenseOut
from orgmanage.notifications.dispatcher import notify, principals_allowed
from orgmanage.profiles.models import Profile
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection


def _publish(db: AsyncSession, change: ChangeType, expense: Expense) -> None:
    record = ExpenseOut.model_validate(expense).model_dump(mode="json")
    record_change(db, Collection.expenses, change, record, owner_id=expense.user_id)


class ExpenseService:
    """Business logic for expense claim operations."""

    # ── Create ────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        claimant: Profile,
        data: ExpenseCreate,
    ) -> Expense:
        expense = Expense(
            user_id=claimant.id,
            category=data.category,
            description=data.description,
            amount=data.amount,
            expense_date=data.expense_date,
            receipt_url=data.receipt_url,
        )
        db.add(expense)
        await db.flush()
        _publish(db, ChangeType.INSERT, expense)

        await create_audit_entry(
            db,
            action="create",
            entity_type="expense",
            entity_id=expense.id,
            actor_id=claimant.id,
            new_values={"category": data.category, "amount": str(data.amount)},
        )

        reviewers = await principals_allowed(db, Action.expense_review)
        await notify(
            db,
            reviewers,
            NotificationType.approval_pending,
            "Expense pending approval",
            f"{claimant.display_name} submitted {settings.CURRENCY_SYMBOL}"
            f"{data.amount:,.2f} for {data.category}.",
            related_id=expense.id,
            exclude=claimant.id,
        )
        return expense

    # ── Read ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_expense(db: AsyncSession, expense_id: uuid.UUID) -> Expense:
        expense = await db.get(Expense, expense_id)
        if expense is None:
            raise NotFoundException("Expense", expense_id)
        return expense

    @staticmethod
    async def list_expenses(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> tuple[list[Expense], PaginationMeta]:
        query = select(Expense).order_by(Expense.created_at.desc(), Expense.id.desc())
        if user_id:
            query = query.where(Expense.user_id == user_id)
        if status:
            query = query.where(Expense.status == status)
        return await paginate(db, query, pagination)

    @staticmethod
    async def summary(db: AsyncSession, user_id: Optional[uuid.UUID] = None) -> dict:
        """Total claimed amount and count per status."""
        query = select(
            Expense.status, func.count(), func.coalesce(func.sum(Expense.amount), 0),
        ).group_by(Expense.status)
        if user_id:
            query = query.where(Expense.user_id == user_id)
        rows = (await db.execute(query)).all()

        by_status = {s.value: {"count": 0, "amount": "0"} for s in ReviewStatus}
        total = 0
        for status, count, amount in rows:
            by_status[status] = {"count": count, "amount": str(amount)}
            total += amount
        return {"total_amount": str(total), "by_status": by_status}

    # ── Approval flow ─────────────────────────────────────────────────

    @staticmethod
    async def review(
        db: AsyncSession,
        expense_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        decision: ReviewStatus,
    ) -> Expense:
        """Compare-and-set ``pending → decision``; the losing reviewer gets 409."""
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(Expense)
            .where(
                Expense.id == expense_id,
                Expense.status == ReviewStatus.pending.value,
            )
            .values(
                status=decision.value,
                reviewed_by=reviewer_id,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await ExpenseService.get_expense(db, expense_id)
            raise ConflictError(
                "status",
                current.status,
                detail=f"Expense is already {current.status}.",
            )

        expense = await db.get(Expense, expense_id, populate_existing=True)
        _publish(db, ChangeType.UPDATE, expense)

        await create_audit_entry(
            db,
            action="approve" if decision == ReviewStatus.approved else "reject",
            entity_type="expense",
            entity_id=expense.id,
            actor_id=reviewer_id,
            old_values={"status": ReviewStatus.pending.value},
            new_values={"status": decision.value},
        )

        await notify(
            db,
            [expense.user_id],
            NotificationType.approval_pending,
            f"Expense {decision.value}",
            f"Your {expense.category} expense of {settings.CURRENCY_SYMBOL}"
            f"{expense.amount:,.2f} was {decision.value}.",
            related_id=expense.id,
            exclude=reviewer_id,
        )
        return expense
