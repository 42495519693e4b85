"""Leave Pydantic v2 schemas."""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orgmanage.common.constants import LeaveType, ReviewStatus
from orgmanage.common.pagination import PaginationMeta


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ReviewDecision(BaseModel):
    """Approve or reject a pending request."""

    status: ReviewStatus

    @model_validator(mode="after")
    def _terminal_only(self) -> "ReviewDecision":
        if self.status == ReviewStatus.pending:
            raise ValueError("status must be 'approved' or 'rejected'")
        return self


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: str
    start_date: date
    end_date: date
    total_days: int
    reason: Optional[str] = None
    status: str
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeaveRequestListResponse(BaseModel):
    data: List[LeaveRequestOut]
    meta: PaginationMeta
