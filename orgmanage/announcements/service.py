"""Announcement service — post and list company announcements."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.announcements.models import Announcement
from orgmanage.announcements.schemas import AnnouncementCreate, AnnouncementOut
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import NotificationType
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.notifications.dispatcher import DispatchResult, active_principals, notify
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection


class AnnouncementService:

    @staticmethod
    async def create(
        db: AsyncSession,
        author_id: uuid.UUID,
        data: AnnouncementCreate,
    ) -> tuple[Announcement, DispatchResult]:
        """Post an announcement and notify every other active principal."""
        announcement = Announcement(
            created_by=author_id,
            title=data.title,
            content=data.content,
            priority=data.priority.value,
        )
        db.add(announcement)
        await db.flush()

        record = AnnouncementOut.model_validate(announcement).model_dump(mode="json")
        record_change(
            db, Collection.announcements, ChangeType.INSERT, record, owner_id=author_id,
        )

        await create_audit_entry(
            db,
            action="create",
            entity_type="announcement",
            entity_id=announcement.id,
            actor_id=author_id,
            new_values={"title": data.title, "priority": data.priority.value},
        )

        dispatch = await notify(
            db,
            await active_principals(db),
            NotificationType.announcement,
            f"New {announcement.priority} priority announcement",
            announcement.title,
            related_id=announcement.id,
            exclude=author_id,
        )
        return announcement, dispatch

    @staticmethod
    async def list_announcements(
        db: AsyncSession,
        pagination: PaginationParams,
    ) -> tuple[list[Announcement], PaginationMeta]:
        query = select(Announcement).order_by(
            Announcement.created_at.desc(), Announcement.id.desc(),
        )
        return await paginate(db, query, pagination)
