"""IT module tests — asset register and ticket workflow."""

from __future__ import annotations

import uuid

import pytest

from orgmanage.common.constants import Role
from tests.conftest import make_principal


@pytest.fixture
async def it_staff(db):
    return await make_principal(db, Role.it, full_name="Yaw IT")


def _asset(**overrides) -> dict:
    return {
        "asset_name": "MacBook Pro 14",
        "asset_type": "laptop",
        "serial_number": f"SN-{uuid.uuid4().hex[:10]}",
        **overrides,
    }


# ═════════════════════════════════════════════════════════════════════
# Assets
# ═════════════════════════════════════════════════════════════════════


class TestAssets:

    async def test_create_and_assign(self, client, it_staff, user):
        _, it_headers = it_staff
        profile, _ = user
        resp = await client.post(
            "/api/v1/it/assets", json=_asset(assigned_to=str(profile.id)), headers=it_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "assigned"

    async def test_duplicate_serial_conflict(self, client, it_staff):
        _, it_headers = it_staff
        body = _asset(serial_number="SN-DUP-1")
        first = await client.post("/api/v1/it/assets", json=body, headers=it_headers)
        second = await client.post("/api/v1/it/assets", json=body, headers=it_headers)
        assert first.status_code == 201
        assert second.status_code == 409
        assert "serial_number" in second.json()["errors"]

    async def test_user_cannot_manage_assets(self, client, user):
        _, headers = user
        resp = await client.post("/api/v1/it/assets", json=_asset(), headers=headers)
        assert resp.status_code == 403

    async def test_listing_scope(self, client, it_staff, user):
        _, it_headers = it_staff
        profile, headers = user
        await client.post(
            "/api/v1/it/assets", json=_asset(assigned_to=str(profile.id)), headers=it_headers,
        )
        await client.post("/api/v1/it/assets", json=_asset(), headers=it_headers)

        mine = await client.get("/api/v1/it/assets", headers=headers)
        register = await client.get("/api/v1/it/assets", headers=it_headers)
        assert mine.json()["meta"]["total"] == 1
        assert register.json()["meta"]["total"] == 2

    async def test_update_and_delete(self, client, it_staff):
        _, it_headers = it_staff
        asset = (await client.post("/api/v1/it/assets", json=_asset(), headers=it_headers)).json()

        patched = await client.patch(
            f"/api/v1/it/assets/{asset['id']}",
            json={"status": "maintenance", "notes": "Battery swap"},
            headers=it_headers,
        )
        assert patched.status_code == 200
        assert patched.json()["status"] == "maintenance"
        assert patched.json()["notes"] == "Battery swap"

        deleted = await client.delete(f"/api/v1/it/assets/{asset['id']}", headers=it_headers)
        assert deleted.status_code == 204
        missing = await client.patch(
            f"/api/v1/it/assets/{asset['id']}", json={"notes": "x"}, headers=it_headers,
        )
        assert missing.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# Tickets
# ═════════════════════════════════════════════════════════════════════


class TestTickets:

    async def _open(self, client, headers) -> dict:
        resp = await client.post(
            "/api/v1/it/tickets",
            json={
                "title": "VPN keeps dropping",
                "description": "Disconnects every 10 minutes",
                "category": "network",
                "priority": "high",
            },
            headers=headers,
        )
        assert resp.status_code == 201
        return resp.json()

    async def test_open_ticket(self, client, user):
        profile, headers = user
        ticket = await self._open(client, headers)
        assert ticket["status"] == "open"
        assert ticket["created_by"] == str(profile.id)

    async def test_forward_moves_and_resolution_stamp(self, client, it_staff, user):
        staff, it_headers = it_staff
        _, headers = user
        ticket = await self._open(client, headers)

        started = await client.patch(
            f"/api/v1/it/tickets/{ticket['id']}",
            json={"status": "in_progress", "assigned_to": str(staff.id)},
            headers=it_headers,
        )
        assert started.status_code == 200
        assert started.json()["assigned_to"] == str(staff.id)
        assert started.json()["resolved_at"] is None

        resolved = await client.patch(
            f"/api/v1/it/tickets/{ticket['id']}", json={"status": "resolved"}, headers=it_headers,
        )
        assert resolved.json()["status"] == "resolved"
        assert resolved.json()["resolved_at"] is not None

    async def test_backward_move_rejected(self, client, it_staff, user):
        _, it_headers = it_staff
        _, headers = user
        ticket = await self._open(client, headers)
        await client.patch(
            f"/api/v1/it/tickets/{ticket['id']}", json={"status": "resolved"}, headers=it_headers,
        )
        reopened = await client.patch(
            f"/api/v1/it/tickets/{ticket['id']}", json={"status": "open"}, headers=it_headers,
        )
        assert reopened.status_code == 422
        assert "status" in reopened.json()["errors"]

    async def test_requester_cannot_update(self, client, user):
        _, headers = user
        ticket = await self._open(client, headers)
        resp = await client.patch(
            f"/api/v1/it/tickets/{ticket['id']}", json={"status": "resolved"}, headers=headers,
        )
        assert resp.status_code == 403

    async def test_ticket_visibility(self, client, db, it_staff, user):
        _, it_headers = it_staff
        _, headers = user
        _, other_headers = await make_principal(db)
        ticket = await self._open(client, headers)

        assert (await client.get(f"/api/v1/it/tickets/{ticket['id']}", headers=it_headers)).status_code == 200
        assert (await client.get(f"/api/v1/it/tickets/{ticket['id']}", headers=other_headers)).status_code == 403
        assert (await client.get("/api/v1/it/tickets", headers=other_headers)).json()["meta"]["total"] == 0
