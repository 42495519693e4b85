"""Auth service — Google OAuth exchange, JWT management, session lifecycle."""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.auth.models import RoleAssignment, UserSession
from orgmanage.common.constants import Role
from orgmanage.common.exceptions import AuthError, ForbiddenException, PersistenceError
from orgmanage.config import settings
from orgmanage.profiles.models import Profile

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


# ── Google OAuth ────────────────────────────────────────────────────

async def verify_google_token(code: str, redirect_uri: str) -> dict[str, Any]:
    """Exchange a Google authorization code for user info.

    Returns dict with keys: email, name, picture, google_id.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_SECONDS) as client:
            # 1. Exchange code → tokens
            token_resp = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": settings.GOOGLE_CLIENT_ID,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET,
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            token_data = token_resp.json()
            if token_resp.status_code != 200 or "access_token" not in token_data:
                raise AuthError(
                    detail=f"Google token exchange failed: {token_data.get('error_description', 'unknown error')}",
                )

            # 2. Fetch user info
            info_resp = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {token_data['access_token']}"},
            )
            if info_resp.status_code != 200:
                raise AuthError(detail="Failed to fetch Google user info.")
            info = info_resp.json()
    except httpx.TimeoutException:
        raise PersistenceError(detail="Google sign-in timed out.")
    except httpx.HTTPError as exc:
        raise PersistenceError(detail=f"Google sign-in unavailable: {exc.__class__.__name__}.")

    return {
        "email": info["email"],
        "name": info.get("name", ""),
        "picture": info.get("picture"),
        "google_id": info["id"],
    }


def validate_domain(email: str) -> None:
    """Ensure the email belongs to the allowed domain, when one is configured."""
    if settings.ALLOWED_DOMAIN and not email.endswith(f"@{settings.ALLOWED_DOMAIN}"):
        raise ForbiddenException(
            detail=f"Only @{settings.ALLOWED_DOMAIN} accounts are permitted.",
        )


# ── Profiles ────────────────────────────────────────────────────────

async def find_or_create_profile(
    db: AsyncSession,
    google_info: dict[str, Any],
) -> tuple[Profile, bool]:
    """Return ``(profile, created)`` for the Google identity.

    A first sign-in creates the profile with no role rows, which the
    policy treats as the base ``user`` tier.
    """
    result = await db.execute(select(Profile).where(Profile.email == google_info["email"]))
    profile = result.scalars().first()
    if profile is not None:
        if not profile.is_active:
            raise AuthError(detail="User account is inactive.")
        if not profile.google_id:
            profile.google_id = google_info["google_id"]
        if not profile.avatar_url and google_info.get("picture"):
            profile.avatar_url = google_info["picture"]
        await db.flush()
        return profile, False

    profile = Profile(
        email=google_info["email"],
        full_name=google_info.get("name") or None,
        avatar_url=google_info.get("picture"),
        google_id=google_info["google_id"],
    )
    db.add(profile)
    await db.flush()
    return profile, True


async def get_active_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    result = await db.execute(
        select(Profile).where(Profile.id == user_id, Profile.is_active.is_(True)),
    )
    profile = result.scalars().first()
    if profile is None:
        raise AuthError(detail="User account is inactive or not found.")
    return profile


# ── Roles ───────────────────────────────────────────────────────────

async def get_roles(db: AsyncSession, user_id: uuid.UUID) -> frozenset[Role]:
    """Return the principal's explicit role set (possibly empty)."""
    result = await db.execute(
        select(RoleAssignment.role).where(RoleAssignment.user_id == user_id),
    )
    return frozenset(Role(row[0]) for row in result.all())


async def replace_roles(
    db: AsyncSession,
    user_id: uuid.UUID,
    roles: set[Role],
) -> frozenset[Role]:
    """Replace the whole role set of *user_id*. ``user`` is implicit and not stored."""
    await db.execute(delete(RoleAssignment).where(RoleAssignment.user_id == user_id))
    for role in sorted(roles - {Role.user}, key=lambda r: r.value):
        db.add(RoleAssignment(user_id=user_id, role=role))
    await db.flush()
    return frozenset(roles - {Role.user})


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _create_access_token(user_id: uuid.UUID) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds). Roles are never embedded."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(user_id),
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


def _create_refresh_token(user_id: uuid.UUID) -> str:
    payload = {
        "sub": str(user_id),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_EXPIRY_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise AuthError(detail="Token has expired.")
    except JWTError:
        raise AuthError(detail="Invalid token.")

    if payload.get("type") != expected_type:
        raise AuthError(detail="Invalid token type.")
    return payload


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    profile: Profile,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, str, int]:
    """Create JWT pair and persist session. Returns (access, refresh, expires_in)."""
    access_token, expires_in = _create_access_token(profile.id)
    refresh_token = _create_refresh_token(profile.id)

    session = UserSession(
        user_id=profile.id,
        token_hash=hash_token(access_token),
        refresh_token_hash=hash_token(refresh_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )
    db.add(session)
    await db.flush()

    return access_token, refresh_token, expires_in


async def validate_access_token(db: AsyncSession, token: str) -> tuple[UserSession, Profile]:
    """Check signature, type, persisted session and profile; raise AuthError otherwise."""
    payload = decode_token(token, "access")

    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    session = result.scalars().first()
    if session is None:
        raise AuthError(detail="Session invalid or expired.")

    profile = await get_active_profile(db, uuid.UUID(payload["sub"]))
    return session, profile


# ── Refresh (with token rotation + reuse detection) ─────────────────

async def refresh_session(
    db: AsyncSession,
    refresh_token_str: str,
) -> tuple[Profile, str, str, int]:
    """Validate refresh token, rotate it, and issue a new token pair.

    Returns (profile, new_access_token, new_refresh_token, expires_in).

    Each refresh token can be used once. Replaying a consumed one revokes
    every session of that principal.
    """
    payload = decode_token(refresh_token_str, "refresh")

    result = await db.execute(
        select(UserSession).where(
            UserSession.refresh_token_hash == hash_token(refresh_token_str),
        ),
    )
    session = result.scalars().first()

    if session is None:
        raise AuthError(detail="Invalid refresh token.")

    if session.is_revoked:
        await revoke_all_user_sessions(db, session.user_id)
        await db.commit()  # Persist revocations before raising
        raise AuthError(
            detail="Refresh token reuse detected. All sessions revoked for security.",
        )

    session.is_revoked = True
    await db.flush()

    profile = await get_active_profile(db, uuid.UUID(payload["sub"]))
    access_token, expires_in = _create_access_token(profile.id)
    new_refresh_token = _create_refresh_token(profile.id)

    db.add(
        UserSession(
            user_id=profile.id,
            token_hash=hash_token(access_token),
            refresh_token_hash=hash_token(new_refresh_token),
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
        ),
    )
    await db.flush()

    return profile, access_token, new_refresh_token, expires_in


# ── Revoke ──────────────────────────────────────────────────────────

async def revoke_all_user_sessions(db: AsyncSession, user_id: uuid.UUID) -> None:
    result = await db.execute(
        select(UserSession).where(
            UserSession.user_id == user_id,
            UserSession.is_revoked.is_(False),
        ),
    )
    for session in result.scalars().all():
        session.is_revoked = True
    await db.flush()


async def revoke_session(db: AsyncSession, token_hash: str) -> Optional[UserSession]:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()
    return session
