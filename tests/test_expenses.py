"""Expenses module tests — claims, finance review, summary."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from orgmanage.common.constants import Role
from orgmanage.notifications.models import Notification
from tests.conftest import make_principal


def _claim(amount: str = "250.00", category: str = "Travel") -> dict:
    return {
        "category": category,
        "description": "Taxi to client site",
        "amount": amount,
        "expense_date": "2024-03-14",
    }


async def _submit(client, headers, **kwargs) -> dict:
    resp = await client.post("/api/v1/expenses/", json=_claim(**kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestExpenseClaims:

    async def test_submit_notifies_finance(self, client, db, user):
        profile, headers = user
        finance, _ = await make_principal(db, Role.finance)
        hr, _ = await make_principal(db, Role.hr)

        expense = await _submit(client, headers)
        assert expense["status"] == "pending"
        assert Decimal(expense["amount"]) == Decimal("250.00")

        notes = (await db.execute(
            select(Notification.user_id, Notification.message)
        )).all()
        assert [n.user_id for n in notes] == [finance.id]
        assert "250.00" in notes[0].message

    async def test_non_positive_amount_422(self, client, user):
        _, headers = user
        resp = await client.post("/api/v1/expenses/", json=_claim(amount="0"), headers=headers)
        assert resp.status_code == 422

    async def test_scoped_listing(self, client, db, user):
        _, headers = user
        _, other_headers = await make_principal(db)
        _, finance_headers = await make_principal(db, Role.finance)
        await _submit(client, headers)
        await _submit(client, other_headers)

        own = await client.get("/api/v1/expenses/", headers=headers)
        assert own.json()["meta"]["total"] == 1
        everything = await client.get("/api/v1/expenses/", headers=finance_headers)
        assert everything.json()["meta"]["total"] == 2

    async def test_foreign_claim_forbidden(self, client, db, user):
        _, headers = user
        _, other_headers = await make_principal(db)
        expense = await _submit(client, other_headers)
        resp = await client.get(f"/api/v1/expenses/{expense['id']}", headers=headers)
        assert resp.status_code == 403


class TestExpenseReview:

    async def test_finance_approves_once(self, client, db, user):
        _, headers = user
        _, finance_headers = await make_principal(db, Role.finance)
        _, ceo_headers = await make_principal(db, Role.ceo)
        expense = await _submit(client, headers)

        first = await client.post(
            f"/api/v1/expenses/{expense['id']}/review",
            json={"status": "approved"},
            headers=finance_headers,
        )
        second = await client.post(
            f"/api/v1/expenses/{expense['id']}/review",
            json={"status": "rejected"},
            headers=ceo_headers,
        )
        assert first.status_code == 200
        assert first.json()["status"] == "approved"
        assert second.status_code == 409
        assert second.json()["type"].endswith("/conflict")

    async def test_manager_cannot_review(self, client, db, user):
        _, headers = user
        _, manager_headers = await make_principal(db, Role.manager)
        expense = await _submit(client, headers)
        resp = await client.post(
            f"/api/v1/expenses/{expense['id']}/review",
            json={"status": "approved"},
            headers=manager_headers,
        )
        assert resp.status_code == 403

    async def test_summary(self, client, db, user):
        _, headers = user
        _, finance_headers = await make_principal(db, Role.finance)
        approved = await _submit(client, headers, amount="100.00")
        await _submit(client, headers, amount="40.50")
        await client.post(
            f"/api/v1/expenses/{approved['id']}/review",
            json={"status": "approved"},
            headers=finance_headers,
        )

        resp = await client.get("/api/v1/expenses/summary", headers=headers)
        body = resp.json()
        assert Decimal(body["total_amount"]) == Decimal("140.50")
        assert body["by_status"]["approved"]["count"] == 1
        assert body["by_status"]["pending"]["count"] == 1
        assert body["by_status"]["rejected"]["count"] == 0
