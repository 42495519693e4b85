"""Notification service — recipient-side listing and state changes."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.common.exceptions import ForbiddenException, NotFoundException
from orgmanage.common.pagination import PaginationParams, paginate
from orgmanage.notifications.models import Notification
from orgmanage.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection


def _record(db: AsyncSession, change: ChangeType, notification: Notification) -> None:
    record_change(
        db,
        Collection.notifications,
        change,
        NotificationResponse.model_validate(notification).model_dump(mode="json"),
        owner_id=notification.user_id,
    )


class NotificationService:
    """Operations a recipient performs on their own notifications."""

    @staticmethod
    async def list_for(
        db: AsyncSession,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        unread_only: Optional[bool] = None,
    ) -> NotificationListResponse:
        """Return paginated notifications for a principal, newest first."""
        query = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        if unread_only:
            query = query.where(Notification.read.is_(False))

        rows, meta = await paginate(db, query, pagination)
        unread = await NotificationService.unread_count(db, user_id)

        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=NotificationListMeta(**meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(Notification).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        return result.scalar_one()

    @staticmethod
    async def _get_owned(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.user_id != user_id:
            raise ForbiddenException("You can only modify your own notifications.")
        return notification

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        """Mark one notification read. Already-read rows are left untouched."""
        notification = await NotificationService._get_owned(db, notification_id, user_id)
        if not notification.read:
            notification.read = True
            notification.updated_at = datetime.now(timezone.utc)
            await db.flush()
            _record(db, ChangeType.UPDATE, notification)
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(Notification).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        unread = list(result.scalars().all())
        now = datetime.now(timezone.utc)
        for notification in unread:
            notification.read = True
            notification.updated_at = now
        await db.flush()
        for notification in unread:
            _record(db, ChangeType.UPDATE, notification)
        return len(unread)

    @staticmethod
    async def delete(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> None:
        notification = await NotificationService._get_owned(db, notification_id, user_id)
        _record(db, ChangeType.DELETE, notification)
        await db.delete(notification)
        await db.flush()
