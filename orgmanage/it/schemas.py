"""IT Pydantic v2 schemas — assets and support tickets."""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orgmanage.common.constants import AssetStatus, TicketPriority, TicketStatus
from orgmanage.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Assets
# ═════════════════════════════════════════════════════════════════════


class AssetCreate(BaseModel):
    asset_name: str = Field(..., min_length=1, max_length=200)
    asset_type: str = Field(..., min_length=1, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    assigned_to: Optional[uuid.UUID] = None
    status: AssetStatus = AssetStatus.available
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None


class AssetUpdate(BaseModel):
    asset_name: Optional[str] = Field(None, min_length=1, max_length=200)
    asset_type: Optional[str] = Field(None, min_length=1, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    assigned_to: Optional[uuid.UUID] = None
    status: Optional[AssetStatus] = None
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None


class AssetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    asset_name: str
    asset_type: str
    serial_number: Optional[str] = None
    assigned_to: Optional[uuid.UUID] = None
    status: str
    purchase_date: Optional[date] = None
    warranty_expiry: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AssetListResponse(BaseModel):
    data: List[AssetOut]
    meta: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Tickets
# ═════════════════════════════════════════════════════════════════════


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    priority: TicketPriority = TicketPriority.medium


class TicketUpdate(BaseModel):
    status: Optional[TicketStatus] = None
    assigned_to: Optional[uuid.UUID] = None
    priority: Optional[TicketPriority] = None


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    assigned_to: Optional[uuid.UUID] = None
    title: str
    description: str
    category: str
    priority: str
    status: str
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TicketListResponse(BaseModel):
    data: List[TicketOut]
    meta: PaginationMeta
