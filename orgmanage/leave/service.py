"""Leave service — requests and the single-step review workflow."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import NotificationType, ReviewStatus
from orgmanage.common.exceptions import ConflictError, NotFoundException
from orgmanage.common.pagination import PaginationMeta, PaginationParams, paginate
from orgmanage.leave.models import LeaveRequest
from orgmanage.leave.schemas import LeaveRequestCreate, LeaveRequestOut
from orgmanage.notifications.dispatcher import notify, principals_allowed
from orgmanage.profiles.models import Profile
from orgmanage.realtime.broker import record_change
from orgmanage.realtime.events import ChangeType, Collection


def _publish(db: AsyncSession, change: ChangeType, leave: LeaveRequest) -> None:
    record = LeaveRequestOut.model_validate(leave).model_dump(mode="json")
    record_change(db, Collection.leave_requests, change, record, owner_id=leave.user_id)


class LeaveService:
    """Business logic for leave requests."""

    # ── Create ────────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        db: AsyncSession,
        requester: Profile,
        data: LeaveRequestCreate,
    ) -> LeaveRequest:
        leave = LeaveRequest(
            user_id=requester.id,
            leave_type=data.leave_type.value,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
        )
        db.add(leave)
        await db.flush()
        _publish(db, ChangeType.INSERT, leave)

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=requester.id,
            new_values={
                "leave_type": leave.leave_type,
                "start_date": str(leave.start_date),
                "end_date": str(leave.end_date),
            },
        )

        reviewers = await principals_allowed(db, Action.leave_review)
        await notify(
            db,
            reviewers,
            NotificationType.approval_pending,
            "Leave request pending approval",
            f"{requester.display_name} requested {leave.total_days} day(s) of "
            f"{leave.leave_type} leave from {leave.start_date}.",
            related_id=leave.id,
            exclude=requester.id,
        )
        return leave

    # ── Read ──────────────────────────────────────────────────────────

    @staticmethod
    async def get_request(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
        leave = await db.get(LeaveRequest, leave_id)
        if leave is None:
            raise NotFoundException("LeaveRequest", leave_id)
        return leave

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> tuple[list[LeaveRequest], PaginationMeta]:
        query = select(LeaveRequest).order_by(
            LeaveRequest.created_at.desc(), LeaveRequest.id.desc(),
        )
        if user_id:
            query = query.where(LeaveRequest.user_id == user_id)
        if status:
            query = query.where(LeaveRequest.status == status)
        return await paginate(db, query, pagination)

    # ── Review ────────────────────────────────────────────────────────

    @staticmethod
    async def review(
        db: AsyncSession,
        leave_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        decision: ReviewStatus,
    ) -> LeaveRequest:
        """Move a pending request to *decision*.

        The status check and the write are one UPDATE, so of two concurrent
        reviewers exactly one succeeds; the other gets ConflictError.
        """
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_id,
                LeaveRequest.status == ReviewStatus.pending.value,
            )
            .values(
                status=decision.value,
                reviewed_by=reviewer_id,
                reviewed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await LeaveService.get_request(db, leave_id)
            raise ConflictError(
                "status",
                current.status,
                detail=f"Leave request is already {current.status}.",
            )

        leave = await db.get(LeaveRequest, leave_id, populate_existing=True)
        _publish(db, ChangeType.UPDATE, leave)

        await create_audit_entry(
            db,
            action="approve" if decision == ReviewStatus.approved else "reject",
            entity_type="leave_request",
            entity_id=leave.id,
            actor_id=reviewer_id,
            old_values={"status": ReviewStatus.pending.value},
            new_values={"status": decision.value},
        )

        await notify(
            db,
            [leave.user_id],
            NotificationType.approval_pending,
            f"Leave request {decision.value}",
            f"Your {leave.leave_type} leave from {leave.start_date} to "
            f"{leave.end_date} was {decision.value}.",
            related_id=leave.id,
            exclude=reviewer_id,
        )
        return leave
