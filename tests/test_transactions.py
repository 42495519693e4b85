"""Sales tests — transaction entry, options and filtered listing."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from orgmanage.sales.models import Transaction
from tests.conftest import _make_transaction, make_principal


def _sale(**overrides) -> dict:
    return {
        "transaction_id": "TX-1001",
        "date": "2024-05-14",
        "region": "Ashanti",
        "sale_amount": "4500.00",
        "customer_segment": "SMB",
        "lead_source": "Referral",
        "status": "Closed Won",
        **overrides,
    }


class TestCreate:

    async def test_owner_is_caller(self, client, user):
        profile, headers = user
        resp = await client.post(
            "/api/v1/transactions/",
            json=_sale(user_id="ignored"),
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["user_id"] == str(profile.id)
        assert Decimal(body["sale_amount"]) == Decimal("4500.00")
        assert body["status"] == "Closed Won"

    async def test_unknown_region_rejected(self, client, user):
        _, headers = user
        resp = await client.post(
            "/api/v1/transactions/", json=_sale(region="Atlantis"), headers=headers,
        )
        assert resp.status_code == 422
        assert "region" in resp.json()["errors"]

    async def test_negative_amount_rejected(self, client, user):
        _, headers = user
        resp = await client.post(
            "/api/v1/transactions/", json=_sale(sale_amount="-1"), headers=headers,
        )
        assert resp.status_code == 422

    async def test_unknown_status_rejected(self, client, user):
        _, headers = user
        resp = await client.post(
            "/api/v1/transactions/", json=_sale(status="Pending"), headers=headers,
        )
        assert resp.status_code == 422


class TestListing:

    async def test_options(self, client, user):
        _, headers = user
        body = (await client.get("/api/v1/transactions/options", headers=headers)).json()
        assert "Greater Accra" in body["regions"]
        assert body["customer_segments"] == ["SMB", "Enterprise", "Mid-Market"]
        assert set(body["statuses"]) == {"Closed Won", "Closed Lost", "In Progress"}

    async def test_filters(self, client, db, user):
        profile, headers = user
        other, _ = await make_principal(db)
        db.add(Transaction(**_make_transaction(profile.id, day=date(2024, 1, 10), region="Ashanti")))
        db.add(Transaction(**_make_transaction(profile.id, day=date(2024, 2, 10))))
        db.add(Transaction(**_make_transaction(other.id, day=date(2024, 2, 11))))
        await db.commit()

        async def total(**params) -> int:
            resp = await client.get("/api/v1/transactions/", params=params, headers=headers)
            assert resp.status_code == 200
            return resp.json()["meta"]["total"]

        assert await total() == 3
        assert await total(mine="true") == 2
        assert await total(user_id=str(other.id)) == 1
        assert await total(region="Ashanti") == 1
        assert await total(from_date="2024-02-01") == 2
        assert await total(from_date="2024-02-01", to_date="2024-02-10") == 1

    async def test_requires_authentication(self, client):
        assert (await client.get("/api/v1/transactions/")).status_code == 401
