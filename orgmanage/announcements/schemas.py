"""Announcement schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orgmanage.common.constants import AnnouncementPriority
from orgmanage.common.pagination import PaginationMeta


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    priority: AnnouncementPriority = AnnouncementPriority.normal


class AnnouncementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID
    title: str
    content: str
    priority: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnnouncementCreated(AnnouncementOut):
    notified: int = 0


class AnnouncementListResponse(BaseModel):
    data: List[AnnouncementOut]
    meta: PaginationMeta
