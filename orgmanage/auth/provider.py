"""Auth provider — the session authority behind ``SessionContext``.

Wraps the JWT/``user_sessions`` store behind a small async surface and fans
out session-change events (sign-in, sign-out, refresh, role or profile
updates) to in-process listeners once the triggering transaction commits.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orgmanage.auth import service
from orgmanage.common.constants import Role
from orgmanage.common.exceptions import AuthError, PersistenceError
from orgmanage.database import async_session_factory, on_commit
from orgmanage.profiles.models import Profile

logger = logging.getLogger(__name__)


class SessionChange(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


@dataclass(frozen=True)
class AuthSession:
    user_id: uuid.UUID
    expires_at: datetime


@dataclass(frozen=True)
class SignInResult:
    profile: Profile
    access_token: str
    refresh_token: str
    expires_in: int
    created: bool


SessionListener = Callable[[SessionChange, uuid.UUID], None]


class AuthProvider:
    """Session lookups run in their own short-lived DB session."""

    def __init__(self, session_factory: async_sessionmaker = async_session_factory) -> None:
        self.session_factory = session_factory
        self._listeners: list[SessionListener] = []

    # ── Lookups ─────────────────────────────────────────────────────

    async def get_session(self, access_token: str) -> Optional[AuthSession]:
        """Return the live session for *access_token*, or None when it is not valid."""
        try:
            async with self.session_factory() as db:
                session, _ = await service.validate_access_token(db, access_token)
        except AuthError:
            return None
        except SQLAlchemyError as exc:
            raise PersistenceError(detail="Session store unavailable.") from exc
        return AuthSession(user_id=session.user_id, expires_at=session.expires_at)

    async def get_user(self, access_token: str) -> Optional[Profile]:
        try:
            async with self.session_factory() as db:
                _, profile = await service.validate_access_token(db, access_token)
        except AuthError:
            return None
        except SQLAlchemyError as exc:
            raise PersistenceError(detail="Session store unavailable.") from exc
        return profile

    async def get_roles(self, user_id: uuid.UUID) -> frozenset[Role]:
        try:
            async with self.session_factory() as db:
                return await service.get_roles(db, user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(detail="Role store unavailable.") from exc

    # ── Session lifecycle (caller owns the unit of work) ────────────

    async def sign_in(
        self,
        db: AsyncSession,
        code: str,
        redirect_uri: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignInResult:
        google_info = await service.verify_google_token(code, redirect_uri)
        service.validate_domain(google_info["email"])
        profile, created = await service.find_or_create_profile(db, google_info)
        access_token, refresh_token, expires_in = await service.create_session(
            db, profile, ip, user_agent,
        )
        self.emit(db, SessionChange.SIGNED_IN, profile.id)
        return SignInResult(profile, access_token, refresh_token, expires_in, created)

    async def refresh(self, db: AsyncSession, refresh_token: str) -> tuple[str, str, int]:
        profile, access_token, new_refresh, expires_in = await service.refresh_session(
            db, refresh_token,
        )
        self.emit(db, SessionChange.TOKEN_REFRESHED, profile.id)
        return access_token, new_refresh, expires_in

    async def sign_out(self, db: AsyncSession, access_token: str) -> None:
        session = await service.revoke_session(db, service.hash_token(access_token))
        if session is not None:
            self.emit(db, SessionChange.SIGNED_OUT, session.user_id)

    # ── Change notification ─────────────────────────────────────────

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register *listener*; the returned callable removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, db: AsyncSession, change: SessionChange, user_id: uuid.UUID) -> None:
        """Notify listeners of *change* once *db* commits."""
        on_commit(db, lambda: self.notify(change, user_id))

    def notify(self, change: SessionChange, user_id: uuid.UUID) -> None:
        logger.debug("Session change %s for %s", change.value, user_id)
        for listener in list(self._listeners):
            try:
                listener(change, user_id)
            except Exception:
                logger.exception("Session listener failed on %s", change.value)
