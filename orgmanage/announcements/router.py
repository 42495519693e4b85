"""Announcement router."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.announcements.schemas import (
    AnnouncementCreate,
    AnnouncementCreated,
    AnnouncementListResponse,
    AnnouncementOut,
)
from orgmanage.announcements.service import AnnouncementService
from orgmanage.auth.dependencies import Principal, get_current_principal, require_action
from orgmanage.common.pagination import PaginationParams
from orgmanage.database import get_db

router = APIRouter(prefix="", tags=["announcements"])


@router.post("/", response_model=AnnouncementCreated, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    principal: Principal = Depends(require_action(Action.announcement_create)),
    db: AsyncSession = Depends(get_db),
):
    announcement, dispatch = await AnnouncementService.create(db, principal.id, body)
    return AnnouncementCreated(
        **AnnouncementOut.model_validate(announcement).model_dump(),
        notified=len(dispatch.delivered),
    )


@router.get("/", response_model=AnnouncementListResponse)
async def list_announcements(
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    rows, meta = await AnnouncementService.list_announcements(db, pagination)
    return AnnouncementListResponse(
        data=[AnnouncementOut.model_validate(a) for a in rows],
        meta=meta,
    )
