"""Sales service — record and list transactions."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.common.audit import create_audit_entry
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection
from orgmanage.sales.models import Transaction
from orgmanage.sales.schemas import TransactionCreate, TransactionOut


class TransactionService:
    """Transactions are append-only; there is no edit or delete path."""

    @staticmethod
    async def create(
        db: AsyncSession,
        user_id: uuid.UUID,
        data: TransactionCreate,
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            transaction_id=data.transaction_id,
            date=data.date,
            region=data.region,
            sale_amount=data.sale_amount,
            customer_segment=data.customer_segment,
            lead_source=data.lead_source,
            status=data.status.value,
        )
        db.add(transaction)
        await db.flush()

        record = TransactionOut.model_validate(transaction).model_dump(mode="json")
        record_change(db, Collection.transactions, ChangeType.INSERT, record, owner_id=user_id)

        await create_audit_entry(
            db,
            action="create",
            entity_type="transaction",
            entity_id=transaction.id,
            actor_id=user_id,
            new_values={
                "transaction_id": data.transaction_id,
                "sale_amount": str(data.sale_amount),
                "region": data.region,
            },
        )
        return transaction

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        region: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> tuple[list[Transaction], PaginationMeta]:
        query = select(Transaction).order_by(
            Transaction.created_at.desc(), Transaction.id.desc(),
        )
        if user_id:
            query = query.where(Transaction.user_id == user_id)
        if region:
            query = query.where(Transaction.region == region)
        if from_date:
            query = query.where(Transaction.date >= from_date)
        if to_date:
            query = query.where(Transaction.date <= to_date)
        return await paginate(db, query, pagination)

