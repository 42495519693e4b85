"""Admin panel tests — directory, role replacement and deactivation."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from orgmanage.auth.models import RoleAssignment
from orgmanage.auth.provider import SessionChange
from orgmanage.common.audit import AuditTrail
from orgmanage.common.constants import NotificationType, Role
from orgmanage.notifications.models import Notification
from tests.conftest import make_principal


@pytest.fixture
async def hr(db):
    return await make_principal(db, Role.hr, full_name="Akosua HR")


async def _role_values(db, user_id) -> list[str]:
    result = await db.execute(
        select(RoleAssignment.role).where(RoleAssignment.user_id == user_id)
    )
    return sorted(r.value for r in result.scalars().all())


class TestDirectory:

    async def test_list_users_with_roles(self, client, hr, user, ceo):
        _, hr_headers = hr
        resp = await client.get("/api/v1/admin/users", headers=hr_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 3
        roles = {u["full_name"]: u["roles"] for u in body["data"]}
        assert roles["Ama Mensah"] == []
        assert roles["Kofi Boateng"] == ["ceo"]

    async def test_user_forbidden(self, client, user):
        _, headers = user
        assert (await client.get("/api/v1/admin/users", headers=headers)).status_code == 403

    async def test_get_single_user(self, client, hr, user):
        _, hr_headers = hr
        profile, _ = user
        resp = await client.get(f"/api/v1/admin/users/{profile.id}", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == profile.email


class TestRoleReplacement:

    async def test_replace_roles_notifies_and_audits(self, client, db, hr, user):
        actor, hr_headers = hr
        profile, _ = user

        resp = await client.patch(
            f"/api/v1/admin/users/{profile.id}",
            json={"roles": ["finance", "manager"]},
            headers=hr_headers,
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["roles"] == ["finance", "manager"]
        assert await _role_values(db, profile.id) == ["finance", "manager"]

        note = (
            await db.execute(
                select(Notification.type, Notification.message)
                .where(Notification.user_id == profile.id)
            )
        ).one()
        assert note.type == NotificationType.role_change.value
        assert note.message == "Your roles are now: finance, manager."

        audits = await db.scalar(
            select(func.count()).select_from(AuditTrail).where(
                AuditTrail.action == "role_change", AuditTrail.actor_id == actor.id,
            )
        )
        assert audits == 1

    async def test_user_role_is_implicit(self, client, db, hr):
        _, hr_headers = hr
        target, _ = await make_principal(db, Role.it)

        resp = await client.patch(
            f"/api/v1/admin/users/{target.id}", json={"roles": ["user"]}, headers=hr_headers,
        )
        assert resp.json()["roles"] == []
        assert await _role_values(db, target.id) == []

    async def test_unchanged_roles_do_not_notify(self, client, db, hr):
        _, hr_headers = hr
        target, _ = await make_principal(db, Role.it)

        await client.patch(
            f"/api/v1/admin/users/{target.id}", json={"roles": ["it"]}, headers=hr_headers,
        )
        count = await db.scalar(select(func.count()).select_from(Notification))
        assert count == 0

    async def test_profile_edit_emits_user_updated(self, app, client, hr, user):
        _, hr_headers = hr
        profile, _ = user
        events = []
        app.state.auth_provider.on_session_change(lambda change, uid: events.append((change, uid)))

        resp = await client.patch(
            f"/api/v1/admin/users/{profile.id}",
            json={"department": "Finance"},
            headers=hr_headers,
        )
        assert resp.json()["department"] == "Finance"
        assert events == [(SessionChange.USER_UPDATED, profile.id)]


class TestDeactivation:

    async def test_deactivation_revokes_sessions(self, app, client, hr, user):
        _, hr_headers = hr
        profile, headers = user
        events = []
        app.state.auth_provider.on_session_change(lambda change, uid: events.append((change, uid)))

        assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200
        resp = await client.patch(
            f"/api/v1/admin/users/{profile.id}", json={"is_active": False}, headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert events == [(SessionChange.SIGNED_OUT, profile.id)]

        assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 401

    async def test_inactive_hidden_by_default(self, client, hr, user):
        _, hr_headers = hr
        profile, _ = user
        await client.patch(
            f"/api/v1/admin/users/{profile.id}", json={"is_active": False}, headers=hr_headers,
        )
        active = await client.get("/api/v1/admin/users", headers=hr_headers)
        everyone = await client.get(
            "/api/v1/admin/users", params={"include_inactive": "true"}, headers=hr_headers,
        )
        assert active.json()["total"] == 1
        assert everyone.json()["total"] == 2
