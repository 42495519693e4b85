"""Change-stream event types shared by the broker, views and the WebSocket feed."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Collection(str, enum.Enum):
    """Tables that emit row-level change events."""

    transactions = "transactions"
    notifications = "notifications"
    leave_requests = "leave_requests"
    expenses = "expenses"
    it_assets = "it_assets"
    it_tickets = "it_tickets"
    goals = "goals"
    announcements = "announcements"


class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """One committed row change.

    ``record`` is the new row for INSERT/UPDATE and the old row for DELETE,
    already serialised to JSON-compatible values.
    """

    model_config = ConfigDict(frozen=True)

    collection: Collection
    type: ChangeType
    record: dict[str, Any]
    owner_id: Optional[uuid.UUID] = None
    commit_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def record_id(self) -> str:
        return str(self.record["id"])
