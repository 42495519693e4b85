"""Enums and constants for OrgManage — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class Role(str, enum.Enum):
    ceo = "ceo"
    manager = "manager"
    hr = "hr"
    it = "it"
    finance = "finance"
    user = "user"


# ── Sales ───────────────────────────────────────────────────────────

class TransactionStatus(str, enum.Enum):
    closed_won = "Closed Won"
    closed_lost = "Closed Lost"
    in_progress = "In Progress"


REGIONS = [
    "Greater Accra",
    "Ashanti",
    "Western",
    "Eastern",
    "Central",
    "Northern",
    "Volta",
    "Upper East",
]
CUSTOMER_SEGMENTS = ["SMB", "Enterprise", "Mid-Market"]
LEAD_SOURCES = ["Google Ads", "Direct", "Partner", "Referral", "LinkedIn"]


# ── Goals ───────────────────────────────────────────────────────────

class GoalPeriod(str, enum.Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class GoalStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"


# ── Requests with an approval step (leave, expenses) ────────────────

class ReviewStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    personal = "personal"
    maternity = "maternity"
    paternity = "paternity"
    unpaid = "unpaid"


# ── IT ──────────────────────────────────────────────────────────────

class AssetStatus(str, enum.Enum):
    available = "available"
    assigned = "assigned"
    maintenance = "maintenance"
    retired = "retired"


class TicketStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    resolved = "resolved"


class TicketPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


# Allowed forward moves; anything else is rejected.
TICKET_TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
    TicketStatus.open: {TicketStatus.in_progress, TicketStatus.resolved},
    TicketStatus.in_progress: {TicketStatus.resolved},
    TicketStatus.resolved: set(),
}


# ── Announcements ───────────────────────────────────────────────────

class AnnouncementPriority(str, enum.Enum):
    low = "low"
    normal = "normal"
    high = "high"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    transaction = "transaction"
    role_change = "role_change"
    announcement = "announcement"
    approval_pending = "approval_pending"
    goal = "goal"


# ── Misc constants ──────────────────────────────────────────────────

DATE_FORMAT = "%Y-%m-%d"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
REVENUE_WINDOW_DAYS = 30
TOP_PERFORMERS_LIMIT = 10
