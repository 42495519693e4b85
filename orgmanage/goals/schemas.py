"""Goals Pydantic v2 schemas."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orgmanage.analytics.schemas import GoalProgress
from orgmanage.common.constants import GoalPeriod, GoalStatus
from orgmanage.common.pagination import PaginationMeta


class GoalCreate(BaseModel):
    user_id: uuid.UUID
    target_amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    period: GoalPeriod
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self) -> "GoalCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class GoalStatusUpdate(BaseModel):
    status: GoalStatus


class GoalOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    created_by: uuid.UUID
    target_amount: Decimal
    period: str
    start_date: date
    end_date: date
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GoalWithProgress(GoalOut):
    progress: GoalProgress


class GoalListResponse(BaseModel):
    data: List[GoalWithProgress]
    meta: PaginationMeta
