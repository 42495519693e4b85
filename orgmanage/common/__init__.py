"""Common module — shared utilities for OrgManage."""

from orgmanage.common.audit import AuditTrail, create_audit_entry
from orgmanage.common.constants import (
    DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AnnouncementPriority,
    AssetStatus,
    GoalPeriod,
    GoalStatus,
    LeaveType,
    NotificationType,
    ReviewStatus,
    Role,
    TicketPriority,
    TicketStatus,
    TransactionStatus,
)
from orgmanage.common.exceptions import (
    AppException,
    AuthError,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    NotificationDispatchError,
    PersistenceError,
    ValidationException,
    register_exception_handlers,
)
from orgmanage.common.pagination import (
    PaginationMeta,
    PaginationParams,
    build_meta,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "AnnouncementPriority",
    "AssetStatus",
    "GoalPeriod",
    "GoalStatus",
    "LeaveType",
    "NotificationType",
    "ReviewStatus",
    "Role",
    "TicketPriority",
    "TicketStatus",
    "TransactionStatus",
    "DATE_FORMAT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "AuthError",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "NotificationDispatchError",
    "PersistenceError",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "build_meta",
    "paginate",
]
