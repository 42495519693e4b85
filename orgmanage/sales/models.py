"""Sales ORM model: Transaction."""

from __future__ import annotations

import uuid
import datetime as dt
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from orgmanage.database import Base


class Transaction(Base):
    """A recorded sale. Rows are never edited once written."""

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    transaction_id: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False, index=True)
    region: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    sale_amount: Mapped[Decimal] = mapped_column(
        sa.Numeric(14, 2), nullable=False, default=0,
    )
    customer_segment: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    lead_source: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    status: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: dt.datetime.now(dt.timezone.utc),
    )

    __table_args__ = (
        sa.CheckConstraint("sale_amount >= 0", name="ck_transactions_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_id} {self.date} {self.sale_amount}>"
