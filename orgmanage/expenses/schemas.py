"""Expenses Pydantic v2 schemas — request/response validation."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orgmanage.common.pagination import PaginationMeta


class ExpenseCreate(BaseModel):
    """Submit a new expense claim."""

    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    expense_date: date
    receipt_url: Optional[str] = Field(None, max_length=500)


class ExpenseOut(BaseModel):
    """Full expense representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    category: str
    description: str
    amount: Decimal
    expense_date: date
    receipt_url: Optional[str] = None
    status: str = "pending"
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ExpenseListResponse(BaseModel):
    data: List[ExpenseOut]
    meta: PaginationMeta
