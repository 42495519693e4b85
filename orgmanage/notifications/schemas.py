"""Notification Pydantic schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orgmanage.common.constants import NotificationType
from orgmanage.common.pagination import PaginationMeta


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    read: bool
    related_id: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationListMeta(PaginationMeta):
    unread: int = 0


class NotificationListResponse(BaseModel):
    data: List[NotificationResponse]
    meta: NotificationListMeta


class UnreadCountResponse(BaseModel):
    unread_count: int


class DispatchRequest(BaseModel):
    """Payload accepted by the trusted delivery endpoint (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    type: NotificationType
    user_id: uuid.UUID = Field(..., alias="userId")
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    related_id: Optional[uuid.UUID] = Field(None, alias="relatedId")
