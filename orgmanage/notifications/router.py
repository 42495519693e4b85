"""Notification router — recipient endpoints plus the trusted delivery endpoint."""

import hmac
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.auth.dependencies import Principal, require_action
from orgmanage.common.exceptions import NotificationDispatchError
from orgmanage.common.pagination import PaginationParams
from orgmanage.common.rate_limit import DISPATCH_LIMIT, limiter
from orgmanage.config import settings
from orgmanage.database import get_db
from orgmanage.notifications.dispatcher import deliver
from orgmanage.notifications.schemas import (
    DispatchRequest,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from orgmanage.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])

_own = require_action(Action.notification_manage_own)


# ── GET / — list ────────────────────────────────────────────────────

@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(_own),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.list_for(
        db, principal.id, pagination, unread_only=unread_only,
    )


# ── GET /unread-count ───────────────────────────────────────────────

@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: Principal = Depends(_own),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.unread_count(db, principal.id)
    return UnreadCountResponse(unread_count=count)


# ── PATCH /{id}/read ────────────────────────────────────────────────

@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    principal: Principal = Depends(_own),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, notification_id, principal.id)
    return NotificationResponse.model_validate(notification)


# ── POST /read-all ──────────────────────────────────────────────────

@router.post("/read-all")
async def mark_all_read(
    principal: Principal = Depends(_own),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationService.mark_all_read(db, principal.id)
    return {"updated": updated}


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: uuid.UUID,
    principal: Principal = Depends(_own),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService.delete(db, notification_id, principal.id)
    return Response(status_code=204)


# ── POST /dispatch — trusted server-to-server delivery ─────────────

@router.post("/dispatch")
@limiter.limit(DISPATCH_LIMIT)
async def dispatch(
    request: Request,
    payload: Any = Body(None),
    x_service_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Create one notification on behalf of a trusted backend.

    Responds ``{"success": true}`` or a 400 ``{"error": ...}`` body.
    """
    if not settings.SERVICE_ROLE_KEY or not x_service_key or not hmac.compare_digest(
        x_service_key, settings.SERVICE_ROLE_KEY,
    ):
        return JSONResponse(status_code=401, content={"error": "Invalid service key."})

    try:
        body = DispatchRequest.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "body" for err in exc.errors())
        return JSONResponse(status_code=400, content={"error": f"Invalid fields: {fields}"})

    try:
        await deliver(db, body)
    except NotificationDispatchError as exc:
        return JSONResponse(status_code=400, content={"error": exc.detail})
    return {"success": True}
