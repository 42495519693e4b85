"""IT service — asset register and support-ticket workflow."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import TICKET_TRANSITIONS, AssetStatus, TicketStatus
from orgmanage.common.exceptions import (
    ConflictError,
    NotFoundException,
    ValidationException,
)
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.it.models import ITAsset, ITTicket
from orgmanage.it.schemas import (
    AssetCreate,
    AssetOut,
    AssetUpdate,
    TicketCreate,
    TicketOut,
    TicketUpdate,
)
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection


def _publish_asset(db: AsyncSession, change: ChangeType, asset: ITAsset) -> None:
    record = AssetOut.model_validate(asset).model_dump(mode="json")
    record_change(db, Collection.it_assets, change, record, owner_id=asset.assigned_to)


def _publish_ticket(db: AsyncSession, change: ChangeType, ticket: ITTicket) -> None:
    record = TicketOut.model_validate(ticket).model_dump(mode="json")
    record_change(db, Collection.it_tickets, change, record, owner_id=ticket.created_by)


# ── Assets ──────────────────────────────────────────────────────────


class AssetService:

    @staticmethod
    async def create(db: AsyncSession, actor_id: uuid.UUID, data: AssetCreate) -> ITAsset:
        values = data.model_dump()
        values["status"] = data.status.value
        if data.assigned_to and data.status == AssetStatus.available:
            values["status"] = AssetStatus.assigned.value
        asset = ITAsset(**values)
        try:
            async with db.begin_nested():
                db.add(asset)
                await db.flush()
        except IntegrityError:
            raise ConflictError("serial_number", data.serial_number)
        _publish_asset(db, ChangeType.INSERT, asset)

        await create_audit_entry(
            db,
            action="create",
            entity_type="it_asset",
            entity_id=asset.id,
            actor_id=actor_id,
            new_values={"asset_name": asset.asset_name, "status": asset.status},
        )
        return asset

    @staticmethod
    async def get(db: AsyncSession, asset_id: uuid.UUID) -> ITAsset:
        asset = await db.get(ITAsset, asset_id)
        if asset is None:
            raise NotFoundException("ITAsset", asset_id)
        return asset

    @staticmethod
    async def list_assets(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        assigned_to: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> tuple[list[ITAsset], PaginationMeta]:
        query = select(ITAsset).order_by(ITAsset.created_at.desc(), ITAsset.id.desc())
        if assigned_to:
            query = query.where(ITAsset.assigned_to == assigned_to)
        if status:
            query = query.where(ITAsset.status == status)
        return await paginate(db, query, pagination)

    @staticmethod
    async def update(
        db: AsyncSession,
        asset_id: uuid.UUID,
        actor_id: uuid.UUID,
        data: AssetUpdate,
    ) -> ITAsset:
        asset = await AssetService.get(db, asset_id)
        changes = data.model_dump(exclude_unset=True)
        old_values = {k: str(getattr(asset, k)) for k in changes}
        try:
            async with db.begin_nested():
                for field, value in changes.items():
                    setattr(asset, field, value.value if isinstance(value, AssetStatus) else value)
                asset.updated_at = datetime.now(timezone.utc)
                await db.flush()
        except IntegrityError:
            raise ConflictError("serial_number", data.serial_number)
        _publish_asset(db, ChangeType.UPDATE, asset)

        await create_audit_entry(
            db,
            action="update",
            entity_type="it_asset",
            entity_id=asset.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values={k: str(v) for k, v in changes.items()},
        )
        return asset

    @staticmethod
    async def delete(db: AsyncSession, asset_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        asset = await AssetService.get(db, asset_id)
        _publish_asset(db, ChangeType.DELETE, asset)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="it_asset",
            entity_id=asset.id,
            actor_id=actor_id,
            old_values={"asset_name": asset.asset_name, "status": asset.status},
        )
        await db.delete(asset)
        await db.flush()


# ── Tickets ─────────────────────────────────────────────────────────


class TicketService:

    @staticmethod
    async def create(db: AsyncSession, creator_id: uuid.UUID, data: TicketCreate) -> ITTicket:
        ticket = ITTicket(
            created_by=creator_id,
            title=data.title,
            description=data.description,
            category=data.category,
            priority=data.priority.value,
        )
        db.add(ticket)
        await db.flush()
        _publish_ticket(db, ChangeType.INSERT, ticket)
        return ticket

    @staticmethod
    async def get(db: AsyncSession, ticket_id: uuid.UUID) -> ITTicket:
        ticket = await db.get(ITTicket, ticket_id)
        if ticket is None:
            raise NotFoundException("ITTicket", ticket_id)
        return ticket

    @staticmethod
    async def list_tickets(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        created_by: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> tuple[list[ITTicket], PaginationMeta]:
        query = select(ITTicket).order_by(ITTicket.created_at.desc(), ITTicket.id.desc())
        if created_by:
            query = query.where(ITTicket.created_by == created_by)
        if status:
            query = query.where(ITTicket.status == status)
        return await paginate(db, query, pagination)

    @staticmethod
    async def update(
        db: AsyncSession,
        ticket_id: uuid.UUID,
        actor_id: uuid.UUID,
        data: TicketUpdate,
    ) -> ITTicket:
        """Apply assignment/priority changes and at most one forward status move.

        The status write is conditioned on the status read here, so a
        concurrent move makes this call fail with ConflictError.
        """
        ticket = await TicketService.get(db, ticket_id)
        current = TicketStatus(ticket.status)
        now = datetime.now(timezone.utc)
        values: dict = {"updated_at": now}

        if data.status is not None and data.status != current:
            if data.status not in TICKET_TRANSITIONS[current]:
                raise ValidationException(
                    {"status": [f"Cannot move a ticket from '{current.value}' to '{data.status.value}'."]}
                )
            values["status"] = data.status.value
            if data.status == TicketStatus.resolved:
                values["resolved_at"] = now
        if "assigned_to" in data.model_fields_set:
            values["assigned_to"] = data.assigned_to
        if data.priority is not None:
            values["priority"] = data.priority.value

        result = await db.execute(
            update(ITTicket)
            .where(ITTicket.id == ticket_id, ITTicket.status == current.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError("status", current.value, detail="Ticket was changed concurrently.")

        ticket = await db.get(ITTicket, ticket_id, populate_existing=True)
        _publish_ticket(db, ChangeType.UPDATE, ticket)

        if "status" in values:
            await create_audit_entry(
                db,
                action="update",
                entity_type="it_ticket",
                entity_id=ticket.id,
                actor_id=actor_id,
                old_values={"status": current.value},
                new_values={"status": ticket.status},
            )
        return ticket
