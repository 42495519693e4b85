"""Notification dispatcher — fan-out inserts that never fail the caller.

Every recipient gets its own SAVEPOINT, so one bad insert rolls back only
that row. Failures are logged with the recipient ids and reported in the
returned ``DispatchResult``; nothing is retried.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import ACTIONS, Action
from orgmanage.auth.models import RoleAssignment
from orgmanage.common.constants import NotificationType
from orgmanage.common.exceptions import NotificationDispatchError
from orgmanage.notifications.models import Notification
from orgmanage.notifications.schemas import DispatchRequest, NotificationResponse
from orgmanage.profiles.models import Profile
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    delivered: list[uuid.UUID] = field(default_factory=list)
    failed: list[uuid.UUID] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


async def _insert_notification(
    db: AsyncSession,
    recipient_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[uuid.UUID],
) -> Notification:
    notification = Notification(
        user_id=recipient_id,
        type=NotificationType(type).value,
        title=title,
        message=message,
        related_id=related_id,
    )
    db.add(notification)
    await db.flush()
    return notification


def _publish(db: AsyncSession, notification: Notification) -> None:
    record_change(
        db,
        Collection.notifications,
        ChangeType.INSERT,
        NotificationResponse.model_validate(notification).model_dump(mode="json"),
        owner_id=notification.user_id,
    )


async def notify(
    db: AsyncSession,
    recipient_ids: Iterable[uuid.UUID],
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[uuid.UUID] = None,
    exclude: Optional[uuid.UUID] = None,
) -> DispatchResult:
    """Insert one notification per distinct recipient, skipping *exclude*."""
    result = DispatchResult()
    recipients = [r for r in dict.fromkeys(recipient_ids) if r != exclude]

    for recipient_id in recipients:
        try:
            async with db.begin_nested():
                notification = await _insert_notification(
                    db, recipient_id, type, title, message, related_id,
                )
        except SQLAlchemyError as exc:
            logger.debug("Notification insert for %s failed: %r", recipient_id, exc)
            result.failed.append(recipient_id)
            continue
        _publish(db, notification)
        result.delivered.append(recipient_id)

    if result.failed:
        logger.warning(
            "Notification '%s' (%s) not delivered to %d of %d recipients: %s",
            title,
            NotificationType(type).value,
            len(result.failed),
            len(recipients),
            ", ".join(str(r) for r in result.failed),
        )
    return result


async def deliver(db: AsyncSession, request: DispatchRequest) -> Notification:
    """Single delivery for trusted callers. Raises NotificationDispatchError."""
    recipient = await db.get(Profile, request.user_id)
    if recipient is None:
        raise NotificationDispatchError(
            detail=f"Unknown recipient '{request.user_id}'.",
            failed_recipients=[str(request.user_id)],
        )
    try:
        async with db.begin_nested():
            notification = await _insert_notification(
                db,
                request.user_id,
                request.type,
                request.title,
                request.message,
                request.related_id,
            )
    except SQLAlchemyError as exc:
        logger.warning("Notification delivery to %s failed: %r", request.user_id, exc)
        raise NotificationDispatchError(
            detail="Failed to create notification.",
            failed_recipients=[str(request.user_id)],
        ) from exc
    _publish(db, notification)
    return notification


# ── Recipient resolution ────────────────────────────────────────────

async def active_principals(db: AsyncSession) -> list[uuid.UUID]:
    result = await db.execute(
        select(Profile.id).where(Profile.is_active.is_(True)).order_by(Profile.created_at),
    )
    return [row[0] for row in result.all()]


async def principals_allowed(db: AsyncSession, action: Action) -> list[uuid.UUID]:
    """Active principals whose explicit roles permit *action*."""
    allowed = ACTIONS[action]
    if allowed is None:
        return await active_principals(db)
    result = await db.execute(
        select(RoleAssignment.user_id)
        .join(Profile, Profile.id == RoleAssignment.user_id)
        .where(RoleAssignment.role.in_(list(allowed)), Profile.is_active.is_(True))
        .distinct(),
    )
    return [row[0] for row in result.all()]
