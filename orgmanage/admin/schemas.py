"""Admin panel schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from orgmanage.common.constants import Role
from orgmanage.profiles.schemas import ProfileWithRoles


class AdminUserUpdate(BaseModel):
    """Profile fields plus an optional full replacement of the role set."""

    full_name: Optional[str] = Field(None, max_length=200)
    department: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = None
    roles: Optional[List[Role]] = None


class AdminUserListResponse(BaseModel):
    data: List[ProfileWithRoles]
    total: int
