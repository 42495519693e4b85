"""SessionContext tests — role resolution, fail-closed behavior, session events.

Driven by an in-memory provider; the DB-backed provider is covered in
test_auth.py.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from orgmanage.auth.provider import AuthProvider, AuthSession, SessionChange
from orgmanage.auth.session import SessionContext
from orgmanage.common.constants import Role
from orgmanage.common.exceptions import PersistenceError

TOKEN = "access-token"


class FakeProvider(AuthProvider):
    """Tokens map to principals; roles are looked up per principal."""

    def __init__(self) -> None:
        super().__init__(session_factory=None)
        self.sessions: dict[str, uuid.UUID] = {}
        self.roles: dict[uuid.UUID, frozenset[Role]] = {}
        self.role_error: Exception | None = None
        self.role_delay = 0.0

    async def get_session(self, access_token):
        user_id = self.sessions.get(access_token)
        if user_id is None:
            return None
        return AuthSession(user_id, datetime.now(timezone.utc) + timedelta(hours=1))

    async def get_roles(self, user_id):
        if self.role_delay:
            await asyncio.sleep(self.role_delay)
        if self.role_error is not None:
            raise self.role_error
        return self.roles.get(user_id, frozenset())


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def principal_id(provider):
    user_id = uuid.uuid4()
    provider.sessions[TOKEN] = user_id
    provider.roles[user_id] = frozenset({Role.finance})
    return user_id


async def _settle(ctx: SessionContext) -> None:
    await asyncio.gather(*list(ctx._pending))


# ═════════════════════════════════════════════════════════════════════
# Resolution
# ═════════════════════════════════════════════════════════════════════


class TestResolve:

    async def test_resolves_principal_and_roles(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        roles = await ctx.resolve()
        assert roles == {Role.finance}
        assert ctx.principal_id == principal_id
        assert ctx.is_authenticated
        assert ctx.has_role(Role.finance)
        assert not ctx.has_role(Role.user)

    async def test_unknown_token_is_unauthenticated(self, provider):
        ctx = SessionContext(provider, "nope", timeout=1)
        assert await ctx.resolve() == frozenset()
        assert not ctx.is_authenticated

    async def test_no_role_rows_means_user_tier(self, provider, principal_id):
        provider.roles[principal_id] = frozenset()
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        assert ctx.roles == frozenset()
        assert ctx.effective_roles == {Role.user}
        assert ctx.has_any_role([Role.user, Role.ceo])

    @pytest.mark.parametrize(
        "error",
        [
            PersistenceError(),
            OperationalError("SELECT", {}, Exception("db down")),
            ConnectionRefusedError("db host unreachable"),
            ValueError("'auditor' is not a valid Role"),
        ],
    )
    async def test_role_lookup_failure_fails_closed(self, provider, principal_id, error):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        assert ctx.roles == frozenset({Role.finance})
        provider.role_error = error

        assert await ctx.resolve() == frozenset()
        assert ctx.principal_id == principal_id
        assert ctx.effective_roles == {Role.user}

    async def test_role_lookup_timeout_fails_closed(self, provider, principal_id):
        provider.role_delay = 1.0
        ctx = SessionContext(provider, TOKEN, timeout=0.05)
        assert await ctx.resolve() == frozenset()
        assert not ctx.has_role(Role.finance)

    async def test_listeners_fire_only_on_change(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        seen = []
        ctx.subscribe(lambda c: seen.append(c.roles))

        await ctx.resolve()
        await ctx.resolve()
        assert seen == [frozenset({Role.finance})]

    async def test_unsubscribed_listener_not_called(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        seen = []
        unsubscribe = ctx.subscribe(lambda c: seen.append(c))
        unsubscribe()
        await ctx.resolve()
        assert seen == []


# ═════════════════════════════════════════════════════════════════════
# Session events
# ═════════════════════════════════════════════════════════════════════


class TestSessionEvents:

    async def test_signed_out_clears_principal(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        ctx.bind()

        provider.notify(SessionChange.SIGNED_OUT, principal_id)
        assert not ctx.is_authenticated
        assert ctx.roles == frozenset()
        await ctx.close()

    async def test_user_updated_reloads_roles(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        ctx.bind()
        changes = []
        ctx.subscribe(lambda c: changes.append(c.roles))

        provider.roles[principal_id] = frozenset({Role.finance, Role.manager})
        provider.notify(SessionChange.USER_UPDATED, principal_id)
        await _settle(ctx)

        assert ctx.roles == {Role.finance, Role.manager}
        assert changes == [frozenset({Role.finance, Role.manager})]
        await ctx.close()

    async def test_background_reload_failure_fails_closed(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        ctx.bind()

        provider.role_error = ConnectionRefusedError("db host unreachable")
        provider.notify(SessionChange.USER_UPDATED, principal_id)
        await _settle(ctx)

        assert ctx.roles == frozenset()
        assert ctx.is_authenticated
        await ctx.close()

    async def test_other_principals_ignored(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        ctx.bind()

        provider.notify(SessionChange.SIGNED_OUT, uuid.uuid4())
        assert ctx.is_authenticated
        assert not ctx._pending
        await ctx.close()

    async def test_close_unbinds(self, provider, principal_id):
        ctx = SessionContext(provider, TOKEN, timeout=1)
        await ctx.resolve()
        ctx.bind()
        ctx.bind()
        assert len(provider._listeners) == 1

        await ctx.close()
        assert provider._listeners == []
        provider.notify(SessionChange.SIGNED_OUT, principal_id)
        assert ctx.is_authenticated
