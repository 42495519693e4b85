"""Profile tests — own profile and the active directory."""

from __future__ import annotations

from sqlalchemy import func, select

from orgmanage.common.audit import AuditTrail


async def test_get_own_profile(client, user):
    profile, headers = user
    resp = await client.get("/api/v1/profiles/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == str(profile.id)
    assert resp.json()["full_name"] == "Ama Mensah"


async def test_update_own_profile(client, db, user):
    profile, headers = user
    resp = await client.patch(
        "/api/v1/profiles/me", json={"phone": "+233 20 000 0000"}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "+233 20 000 0000"
    assert resp.json()["full_name"] == "Ama Mensah"

    audits = await db.scalar(
        select(func.count()).select_from(AuditTrail).where(AuditTrail.entity_id == profile.id)
    )
    assert audits == 1


async def test_own_profile_cannot_toggle_active(client, user):
    _, headers = user
    resp = await client.patch("/api/v1/profiles/me", json={"is_active": False}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is True


async def test_directory_lists_active(client, user, ceo):
    _, headers = user
    resp = await client.get("/api/v1/profiles/", headers=headers)
    assert resp.status_code == 200
    assert {p["full_name"] for p in resp.json()} == {"Ama Mensah", "Kofi Boateng"}
