"""Sales Pydantic v2 schemas — request/response validation."""

import uuid
import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orgmanage.common.constants import (
    CUSTOMER_SEGMENTS,
    LEAD_SOURCES,
    REGIONS,
    TransactionStatus,
)
from orgmanage.common.pagination import PaginationMeta


class TransactionCreate(BaseModel):
    """Record a new sale. Owner is always the caller."""

    transaction_id: str = Field(..., min_length=1, max_length=100)
    date: dt.date
    region: str
    sale_amount: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)
    customer_segment: str
    lead_source: str
    status: TransactionStatus

    @field_validator("region")
    @classmethod
    def _known_region(cls, v: str) -> str:
        if v not in REGIONS:
            raise ValueError(f"region must be one of {REGIONS}")
        return v

    @field_validator("customer_segment")
    @classmethod
    def _known_segment(cls, v: str) -> str:
        if v not in CUSTOMER_SEGMENTS:
            raise ValueError(f"customer_segment must be one of {CUSTOMER_SEGMENTS}")
        return v

    @field_validator("lead_source")
    @classmethod
    def _known_source(cls, v: str) -> str:
        if v not in LEAD_SOURCES:
            raise ValueError(f"lead_source must be one of {LEAD_SOURCES}")
        return v


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    transaction_id: str
    date: dt.date
    region: str
    sale_amount: Decimal
    customer_segment: str
    lead_source: str
    status: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class TransactionListResponse(BaseModel):
    data: List[TransactionOut]
    meta: PaginationMeta


class TransactionOptions(BaseModel):
    """Allowed values for the transaction entry form."""

    regions: List[str]
    customer_segments: List[str]
    lead_sources: List[str]
    statuses: List[str]
