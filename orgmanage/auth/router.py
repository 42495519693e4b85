"""Auth router — Google OAuth sign-in, token refresh, logout, current principal."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import visible_targets
from orgmanage.auth.dependencies import Principal, get_current_principal
from orgmanage.auth.provider import AuthProvider
from orgmanage.auth.schemas import (
    GoogleAuthRequest,
    MeResponse,
    RefreshRequest,
    RefreshResponse,
    TokenResponse,
    UserInfo,
)
from orgmanage.auth.service import get_roles
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.rate_limit import AUTH_LIMIT, limiter
from orgmanage.database import get_db

router = APIRouter(prefix="", tags=["auth"])


def get_auth_provider(request: Request) -> AuthProvider:
    return request.app.state.auth_provider


# ── POST /google — Google OAuth callback ────────────────────────────

@router.post("/google", response_model=TokenResponse)
@limiter.limit(AUTH_LIMIT)
async def google_auth(
    body: GoogleAuthRequest,
    request: Request,
    provider: AuthProvider = Depends(get_auth_provider),
    db: AsyncSession = Depends(get_db),
):
    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")

    result = await provider.sign_in(db, body.code, body.redirect_uri, ip, user_agent)
    profile = result.profile
    roles = await get_roles(db, profile.id)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=profile.id,
        actor_id=profile.id,
        new_values={"ip": ip, "user_agent": user_agent, "first_login": result.created},
        ip_address=ip,
        user_agent=user_agent,
    )

    return TokenResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        expires_in=result.expires_in,
        user=UserInfo(
            id=profile.id,
            display_name=profile.display_name,
            email=profile.email,
            roles=sorted(r.value for r in roles),
            avatar_url=profile.avatar_url,
            department=profile.department,
        ),
    )


# ── POST /refresh — Rotate token pair ──────────────────────────────

@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit(AUTH_LIMIT)
async def refresh_token(
    body: RefreshRequest,
    request: Request,
    provider: AuthProvider = Depends(get_auth_provider),
    db: AsyncSession = Depends(get_db),
):
    access, refresh, expires_in = await provider.refresh(db, body.refresh_token)
    return RefreshResponse(access_token=access, refresh_token=refresh, expires_in=expires_in)


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    provider: AuthProvider = Depends(get_auth_provider),
    db: AsyncSession = Depends(get_db),
):
    await provider.sign_out(db, principal.access_token)

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=principal.id,
        actor_id=principal.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return {"message": "Logged out successfully"}


# ── GET /me — Current principal ────────────────────────────────────

@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)):
    profile = principal.profile
    return MeResponse(
        id=profile.id,
        display_name=profile.display_name,
        email=profile.email,
        roles=sorted(r.value for r in principal.roles),
        avatar_url=profile.avatar_url,
        department=profile.department,
        phone=profile.phone,
        navigation=[t.value for t in visible_targets(principal.roles)],
    )
