"""Notification tests — recipient endpoints, fan-out dispatcher, trusted delivery."""

from __future__ import annotations

import uuid
from datetime import datetime
from unittest.mock import patch

import pytest
from pydantic import TypeAdapter
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.access.policy import Action
from orgmanage.common.constants import NotificationType, Role
from orgmanage.common.exceptions import NotificationDispatchError
from orgmanage.notifications import dispatcher
from orgmanage.notifications.dispatcher import (
    active_principals,
    deliver,
    notify,
    principals_allowed,
)
from orgmanage.notifications.models import Notification
from orgmanage.notifications.schemas import DispatchRequest, NotificationResponse
from orgmanage.notifications.service import NotificationService
from orgmanage.realtime.broker import change_broker
from orgmanage.realtime.events import ChangeType, Collection
from orgmanage.realtime.view import CollectionView
from tests.conftest import make_principal

SERVICE_HEADERS = {"X-Service-Key": "test-service-key"}


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    title: str = "Test Notification",
    read: bool = False,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=NotificationType.transaction.value,
        title=title,
        message="Test message body",
        read=read,
    )
    db.add(notification)
    await db.commit()
    return notification


async def _count(db: AsyncSession, **filters) -> int:
    query = select(func.count()).select_from(Notification)
    for column, value in filters.items():
        query = query.where(getattr(Notification, column) == value)
    return (await db.execute(query)).scalar_one()


# ═════════════════════════════════════════════════════════════════════
# 1. RECIPIENT ENDPOINTS
# ═════════════════════════════════════════════════════════════════════


class TestRecipientEndpoints:

    async def test_list_only_own_with_unread_meta(self, client, db, user):
        profile, headers = user
        other, _ = await make_principal(db)
        await _seed_notification(db, profile.id, title="Mine 1")
        await _seed_notification(db, profile.id, title="Mine 2", read=True)
        await _seed_notification(db, other.id, title="Theirs")

        resp = await client.get("/api/v1/notifications/", headers=headers)
        assert resp.status_code == 200
        body = resp.json()
        assert {n["title"] for n in body["data"]} == {"Mine 1", "Mine 2"}
        assert body["meta"]["total"] == 2
        assert body["meta"]["unread"] == 1

        unread = await client.get(
            "/api/v1/notifications/", params={"unread_only": True}, headers=headers,
        )
        assert [n["title"] for n in unread.json()["data"]] == ["Mine 1"]

    async def test_unread_count(self, client, db, user):
        profile, headers = user
        await _seed_notification(db, profile.id)
        await _seed_notification(db, profile.id)
        resp = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert resp.json() == {"unread_count": 2}

    async def test_mark_read(self, client, db, user):
        profile, headers = user
        notification = await _seed_notification(db, profile.id)
        resp = await client.patch(
            f"/api/v1/notifications/{notification.id}/read", headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["read"] is True
        assert await _count(db, user_id=profile.id, read=False) == 0

    async def test_mark_read_someone_elses_forbidden(self, client, db, user):
        _, headers = user
        other, _ = await make_principal(db)
        notification = await _seed_notification(db, other.id)
        resp = await client.patch(
            f"/api/v1/notifications/{notification.id}/read", headers=headers,
        )
        assert resp.status_code == 403

    async def test_mark_read_missing_404(self, client, user):
        _, headers = user
        resp = await client.patch(f"/api/v1/notifications/{uuid.uuid4()}/read", headers=headers)
        assert resp.status_code == 404

    async def test_read_all(self, client, db, user):
        profile, headers = user
        other, _ = await make_principal(db)
        for _ in range(3):
            await _seed_notification(db, profile.id)
        await _seed_notification(db, other.id)

        resp = await client.post("/api/v1/notifications/read-all", headers=headers)
        assert resp.json() == {"updated": 3}
        assert await _count(db, read=False) == 1

    async def test_delete(self, client, db, user):
        profile, headers = user
        notification = await _seed_notification(db, profile.id)
        resp = await client.delete(f"/api/v1/notifications/{notification.id}", headers=headers)
        assert resp.status_code == 204
        assert await _count(db, user_id=profile.id) == 0

    async def test_unauthenticated(self, client):
        resp = await client.get("/api/v1/notifications/")
        assert resp.status_code == 401


# ═════════════════════════════════════════════════════════════════════
# 2. FAN-OUT DISPATCHER
# ═════════════════════════════════════════════════════════════════════


class TestNotify:

    async def test_dedupes_and_excludes_actor(self, db):
        actor, _ = await make_principal(db)
        a, _ = await make_principal(db)
        b, _ = await make_principal(db)

        result = await notify(
            db, [a.id, b.id, a.id, actor.id],
            NotificationType.announcement, "Hello", "World", exclude=actor.id,
        )
        await db.commit()
        assert result.ok
        assert result.delivered == [a.id, b.id]
        assert await _count(db) == 2

    async def test_one_failed_insert_spares_the_rest(self, db, caplog):
        a, _ = await make_principal(db)
        b, _ = await make_principal(db)
        c, _ = await make_principal(db)
        real_insert = dispatcher._insert_notification

        async def _flaky(session, recipient_id, *args):
            if recipient_id == b.id:
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return await real_insert(session, recipient_id, *args)

        await db.execute(select(1))
        with patch.object(dispatcher, "_insert_notification", side_effect=_flaky):
            result = await notify(
                db, [a.id, b.id, c.id], NotificationType.goal, "Goal", "New goal",
            )
        await db.commit()

        assert not result.ok
        assert result.delivered == [a.id, c.id]
        assert result.failed == [b.id]
        assert await _count(db) == 2
        assert str(b.id) in caplog.text

    async def test_published_to_recipient_after_commit(self, db):
        a, _ = await make_principal(db)
        seen = []
        sub = change_broker.subscribe(Collection.notifications, seen.append, owner_id=a.id)
        try:
            await notify(db, [a.id], NotificationType.goal, "Goal", "New goal")
            assert seen == []
            await db.commit()
            assert len(seen) == 1
            assert seen[0].record["user_id"] == str(a.id)
        finally:
            sub.unsubscribe()

    async def test_recipient_resolution(self, db):
        finance, _ = await make_principal(db, Role.finance)
        ceo, _ = await make_principal(db, Role.ceo)
        hr, _ = await make_principal(db, Role.hr)
        retired, _ = await make_principal(db, Role.finance)
        retired.is_active = False
        await db.commit()

        reviewers = await principals_allowed(db, Action.expense_review)
        assert set(reviewers) == {finance.id, ceo.id}
        everyone = await active_principals(db)
        assert set(everyone) == {finance.id, ceo.id, hr.id}
        assert set(await principals_allowed(db, Action.leave_request)) == set(everyone)

    async def test_read_flag_survives_reordered_events(self, db):
        a, _ = await make_principal(db)
        seen = []
        sub = change_broker.subscribe(Collection.notifications, seen.append, owner_id=a.id)
        try:
            await notify(db, [a.id], NotificationType.goal, "Goal", "New goal")
            await db.commit()
            notification_id = await db.scalar(
                select(Notification.id).where(Notification.user_id == a.id)
            )
            await NotificationService.mark_read(db, notification_id, a.id)
            await db.commit()
        finally:
            sub.unsubscribe()

        assert [e.type for e in seen] == [ChangeType.INSERT, ChangeType.UPDATE]
        inserted_at, read_at = (
            TypeAdapter(datetime).validate_python(e.record["updated_at"]) for e in seen
        )
        assert read_at > inserted_at

        row = await db.get(Notification, notification_id, populate_existing=True)
        refetched = NotificationResponse.model_validate(row).model_dump(mode="json")

        def _content(record: dict) -> dict:
            return {k: v for k, v in record.items() if not k.endswith("_at")}

        for order in (seen, list(reversed(seen))):
            view = CollectionView()
            for event in order:
                view.apply(event)
            assert [_content(r) for r in view.records] == [_content(refetched)]
            assert view.get(notification_id)["read"] is True


# ═════════════════════════════════════════════════════════════════════
# 3. TRUSTED DELIVERY
# ═════════════════════════════════════════════════════════════════════


class TestDispatchEndpoint:

    async def test_delivers_one_notification(self, client, db, user):
        profile, _ = user
        resp = await client.post(
            "/api/v1/notifications/dispatch",
            json={
                "type": "transaction",
                "userId": str(profile.id),
                "title": "New sale",
                "message": "A sale was recorded",
            },
            headers=SERVICE_HEADERS,
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert await _count(db, user_id=profile.id) == 1

    @pytest.mark.parametrize("headers", [{}, {"X-Service-Key": "wrong"}])
    async def test_rejects_bad_service_key(self, client, user, headers):
        profile, _ = user
        resp = await client.post(
            "/api/v1/notifications/dispatch",
            json={"type": "goal", "userId": str(profile.id), "title": "t", "message": "m"},
            headers=headers,
        )
        assert resp.status_code == 401
        assert "error" in resp.json()

    async def test_invalid_payload_400(self, client):
        resp = await client.post(
            "/api/v1/notifications/dispatch",
            json={"type": "not-a-type", "title": "t"},
            headers=SERVICE_HEADERS,
        )
        assert resp.status_code == 400
        assert "userId" in resp.json()["error"]

    async def test_unknown_recipient_400(self, client):
        resp = await client.post(
            "/api/v1/notifications/dispatch",
            json={"type": "goal", "userId": str(uuid.uuid4()), "title": "t", "message": "m"},
            headers=SERVICE_HEADERS,
        )
        assert resp.status_code == 400
        assert "Unknown recipient" in resp.json()["error"]

    async def test_deliver_raises_for_unknown_recipient(self, db):
        request = DispatchRequest(
            type=NotificationType.goal, user_id=uuid.uuid4(), title="t", message="m",
        )
        with pytest.raises(NotificationDispatchError):
            await deliver(db, request)
