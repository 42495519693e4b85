"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import List, Optional

from pydantic import BaseModel


# ── Requests ────────────────────────────────────────────────────────

class GoogleAuthRequest(BaseModel):
    code: str
    redirect_uri: str


class RefreshRequest(BaseModel):
    refresh_token: str


# ── Embedded / Shared ──────────────────────────────────────────────

class UserInfo(BaseModel):
    id: uuid.UUID
    display_name: str
    email: str
    roles: List[str]
    avatar_url: Optional[str] = None
    department: Optional[str] = None


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class RefreshResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(UserInfo):
    phone: Optional[str] = None
    navigation: List[str]
