"""Analytics endpoint tests — scope selection and aggregate shapes."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from orgmanage.sales.models import Transaction
from tests.conftest import _make_transaction, make_principal


@pytest.fixture
async def seeded(db, user, ceo):
    """Two sellers with recent sales; the ceo has none of their own."""
    alice, _ = user
    bob, bob_headers = await make_principal(db, full_name="Bob Owusu")
    today = date.today()
    rows = [
        (alice.id, today, "3000.00", "Ashanti"),
        (alice.id, today - timedelta(days=1), "1000.00", "Greater Accra"),
        (bob.id, today, "5000.00", "Greater Accra"),
        (bob.id, today - timedelta(days=90), "700.00", "Volta"),
    ]
    for user_id, day, amount, region in rows:
        db.add(Transaction(**_make_transaction(user_id, day=day, amount=amount, region=region)))
    await db.commit()
    return alice, bob, bob_headers


async def test_ceo_sees_organization(client, seeded, ceo):
    _, ceo_headers = ceo
    resp = await client.get("/api/v1/analytics/summary", headers=ceo_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["scope"] == "organization"
    assert body["currency"] == "GH₵"
    assert body["transaction_count"] == 4
    assert Decimal(body["total_revenue"]) == Decimal("9700.00")


async def test_user_sees_own(client, seeded, user):
    _, headers = user
    body = (await client.get("/api/v1/analytics/summary", headers=headers)).json()
    assert body["scope"] == "own"
    assert body["transaction_count"] == 2
    assert Decimal(body["total_revenue"]) == Decimal("4000.00")
    assert Decimal(body["average_transaction"]) == Decimal("2000")


async def test_revenue_by_region_descending(client, seeded, ceo):
    _, ceo_headers = ceo
    body = (await client.get("/api/v1/analytics/revenue-by-region", headers=ceo_headers)).json()
    assert [r["region"] for r in body] == ["Greater Accra", "Ashanti", "Volta"]
    assert Decimal(body[0]["revenue"]) == Decimal("6000.00")


async def test_revenue_by_day_window(client, seeded, ceo):
    _, ceo_headers = ceo
    body = (
        await client.get("/api/v1/analytics/revenue-by-day", params={"window": 2}, headers=ceo_headers)
    ).json()
    assert [p["date"] for p in body] == [
        (date.today() - timedelta(days=1)).isoformat(),
        date.today().isoformat(),
    ]


async def test_performance_top_performers_and_comparison(client, seeded, ceo):
    alice, bob, _ = seeded
    _, ceo_headers = ceo
    resp = await client.get(
        "/api/v1/analytics/performance",
        params={"days": 30, "user_id": str(alice.id), "compare_to": str(bob.id)},
        headers=ceo_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [p["user_id"] for p in body["top_performers"]] == [str(bob.id), str(alice.id)]
    assert body["top_performers"][0]["deals"] == 1

    series = {p["date"]: p for p in body["series"]}
    today = series[date.today().isoformat()]
    assert Decimal(today["revenue"]) == Decimal("3000.00")
    assert Decimal(today["comparison"]) == Decimal("5000.00")
    yesterday = series[(date.today() - timedelta(days=1)).isoformat()]
    assert Decimal(yesterday["comparison"]) == Decimal("0")


async def test_performance_scope_for_user(client, seeded, user):
    alice, _, _ = seeded
    _, headers = user
    body = (await client.get("/api/v1/analytics/performance", headers=headers)).json()
    assert [p["user_id"] for p in body["top_performers"]] == [str(alice.id)]
