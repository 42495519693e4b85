"""IT ORM models: ITAsset, ITTicket."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from orgmanage.common.constants import AssetStatus, TicketPriority, TicketStatus
from orgmanage.database import Base


class ITAsset(Base):
    """Company hardware / software asset."""

    __tablename__ = "it_assets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    asset_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    asset_type: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    serial_number: Mapped[Optional[str]] = mapped_column(sa.String(100), unique=True)
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("profiles.id"), index=True,
    )
    status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=AssetStatus.available.value,
    )
    purchase_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    warranty_expiry: Mapped[Optional[date]] = mapped_column(sa.Date)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<ITAsset {self.asset_name} ({self.status})>"


class ITTicket(Base):
    """IT support ticket."""

    __tablename__ = "it_tickets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True,
    )
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("profiles.id"),
    )
    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    category: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    priority: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=TicketPriority.medium.value,
    )
    status: Mapped[str] = mapped_column(
        sa.String(20), nullable=False, default=TicketStatus.open.value,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<ITTicket '{self.title[:30]}' {self.status}>"
