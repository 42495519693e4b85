"""Auth dependencies — JWT validation, role loading, action enforcement."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action, can_perform
from orgmanage.auth.service import get_roles, validate_access_token
from orgmanage.common.constants import Role
from orgmanage.common.exceptions import AuthError, ForbiddenException
from orgmanage.database import get_db
from orgmanage.profiles.models import Profile


@dataclass(frozen=True)
class Principal:
    """The authenticated profile plus its role set for one request."""

    profile: Profile
    roles: frozenset[Role]
    access_token: str

    @property
    def id(self) -> uuid.UUID:
        return self.profile.id

    @property
    def effective_roles(self) -> frozenset[Role]:
        return self.roles or frozenset({Role.user})

    def can(self, action: Action) -> bool:
        return can_perform(self.roles, action)


def extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthError(detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    """Validate JWT, verify session, load roles from ``user_roles``."""
    token = extract_bearer(request)
    _, profile = await validate_access_token(db, token)
    roles = await get_roles(db, profile.id)
    principal = Principal(profile=profile, roles=roles, access_token=token)
    request.state.principal = principal
    return principal


# ── Action-based dependency ─────────────────────────────────────────

def require_action(action: Action) -> Callable:
    """Return a FastAPI dependency that enforces the access policy for *action*."""

    async def _check(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if not principal.can(action):
            held = sorted(r.value for r in principal.effective_roles)
            raise ForbiddenException(
                detail=f"Roles {held} may not perform '{action.value}'.",
            )
        return principal

    return _check
