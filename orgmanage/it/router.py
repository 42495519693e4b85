"""IT router — asset register and support tickets."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action, Scope, collection_scope
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.common.constants import AssetStatus, TicketStatus
from orgmanage.common.exceptions import ForbiddenException
from orgmanage.common.pagination import PaginationParams
from orgmanage.database import get_db
from orgmanage.it.schemas import (
    AssetCreate,
    AssetListResponse,
    AssetOut,
    AssetUpdate,
    TicketCreate,
    TicketListResponse,
    TicketOut,
    TicketUpdate,
)
from orgmanage.it.service import AssetService, TicketService
from orgmanage.realtime.events import Collection

router = APIRouter(prefix="", tags=["it"])

_manage_assets = require_action(Action.asset_manage)
_manage_tickets = require_action(Action.ticket_manage)


# ═════════════════════════════════════════════════════════════════════
# Assets
# ═════════════════════════════════════════════════════════════════════


@router.get("/assets", response_model=AssetListResponse)
async def list_assets(
    status: Optional[AssetStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """IT sees the whole register; others see assets assigned to them."""
    own_only = collection_scope(principal.roles, Collection.it_assets) is Scope.own
    rows, meta = await AssetService.list_assets(
        db,
        pagination,
        assigned_to=principal.id if own_only else None,
        status=status.value if status else None,
    )
    return AssetListResponse(data=[AssetOut.model_validate(a) for a in rows], meta=meta)


@router.post("/assets", response_model=AssetOut, status_code=201)
async def create_asset(
    body: AssetCreate,
    principal: Principal = Depends(_manage_assets),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.create(db, principal.id, body)
    return AssetOut.model_validate(asset)


@router.patch("/assets/{asset_id}", response_model=AssetOut)
async def update_asset(
    asset_id: uuid.UUID,
    body: AssetUpdate,
    principal: Principal = Depends(_manage_assets),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.update(db, asset_id, principal.id, body)
    return AssetOut.model_validate(asset)


@router.delete("/assets/{asset_id}", status_code=204)
async def delete_asset(
    asset_id: uuid.UUID,
    principal: Principal = Depends(_manage_assets),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete(db, asset_id, principal.id)
    return Response(status_code=204)


# ═════════════════════════════════════════════════════════════════════
# Tickets
# ═════════════════════════════════════════════════════════════════════


@router.get("/tickets", response_model=TicketListResponse)
async def list_tickets(
    status: Optional[TicketStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    own_only = collection_scope(principal.roles, Collection.it_tickets) is Scope.own
    rows, meta = await TicketService.list_tickets(
        db,
        pagination,
        created_by=principal.id if own_only else None,
        status=status.value if status else None,
    )
    return TicketListResponse(data=[TicketOut.model_validate(t) for t in rows], meta=meta)


@router.post("/tickets", response_model=TicketOut, status_code=201)
async def create_ticket(
    body: TicketCreate,
    principal: Principal = Depends(require_action(Action.ticket_create)),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketService.create(db, principal.id, body)
    return TicketOut.model_validate(ticket)


@router.get("/tickets/{ticket_id}", response_model=TicketOut)
async def get_ticket(
    ticket_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketService.get(db, ticket_id)
    if ticket.created_by != principal.id and not principal.can(Action.ticket_manage):
        raise ForbiddenException("You can only view your own tickets.")
    return TicketOut.model_validate(ticket)


@router.patch("/tickets/{ticket_id}", response_model=TicketOut)
async def update_ticket(
    ticket_id: uuid.UUID,
    body: TicketUpdate,
    principal: Principal = Depends(_manage_tickets),
    db: AsyncSession = Depends(get_db),
):
    ticket = await TicketService.update(db, ticket_id, principal.id, body)
    return TicketOut.model_validate(ticket)
