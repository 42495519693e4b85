"""Realtime router — streams one collection's changes over a WebSocket.

The client connects with ``?token=<access token>`` and first receives a
``SNAPSHOT`` message with the current rows, then one message per change.
Owner-scoped readers only ever see their own rows. If the principal signs
out or loses access while connected, the socket is closed with 1008.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from orgmanage.access.policy import Scope, collection_scope
from orgmanage.auth.session import SessionContext
from orgmanage.realtime.bridge import SyncBridge
from orgmanage.realtime.events import ChangeEvent, Collection
from orgmanage.realtime.view import CollectionView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["realtime"])


@router.websocket("/{collection}")
async def collection_feed(
    websocket: WebSocket,
    collection: str,
    token: Optional[str] = Query(None),
):
    try:
        target = Collection(collection)
    except ValueError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Unknown collection.")
        return

    ctx = SessionContext(websocket.app.state.auth_provider, token or "")
    await ctx.resolve()
    if not ctx.is_authenticated:
        await ctx.close()
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Not authenticated.")
        return

    scope = collection_scope(ctx.roles, target)
    owner_id = ctx.principal_id if scope is Scope.own else None

    await websocket.accept()
    revoked = asyncio.Event()

    def _on_session(current: SessionContext) -> None:
        if not current.is_authenticated or collection_scope(current.roles, target) is not scope:
            revoked.set()

    ctx.subscribe(_on_session)
    ctx.bind()

    snapshot_sent = asyncio.Event()

    async def _send(view: CollectionView, event: Optional[ChangeEvent]) -> None:
        await snapshot_sent.wait()
        if event is None:
            await websocket.send_json({"type": "SNAPSHOT", "records": view.records})
        else:
            await websocket.send_json(event.model_dump(mode="json"))

    bridge: SyncBridge = websocket.app.state.sync_bridge
    subscription = await bridge.subscribe(target, owner_id=owner_id, on_change=_send)
    logger.debug("Realtime feed opened: %s for %s", target.value, ctx.principal_id)

    receiver = asyncio.create_task(_drain_client(websocket))
    watcher = asyncio.create_task(revoked.wait())
    try:
        await websocket.send_json({"type": "SNAPSHOT", "records": subscription.view.records})
        snapshot_sent.set()
        done, _ = await asyncio.wait(
            {receiver, watcher}, return_when=asyncio.FIRST_COMPLETED,
        )
        if watcher in done:
            await websocket.close(
                code=status.WS_1008_POLICY_VIOLATION, reason="Access changed.",
            )
    finally:
        await subscription.unsubscribe()
        await ctx.close()
        for task in (receiver, watcher):
            task.cancel()
        await asyncio.gather(receiver, watcher, return_exceptions=True)
        logger.debug("Realtime feed closed: %s for %s", target.value, ctx.principal_id)


async def _drain_client(websocket: WebSocket) -> None:
    """Consume client frames until it disconnects; the feed is server-to-client."""
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return
