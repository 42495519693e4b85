"""Realtime sync bridge: keeps a CollectionView current from the change stream.

Each subscription owns one queue and one consumer task. The broker handler
only enqueues; the consumer applies events in order, so handlers for the same
view never run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from orgmanage.common.exceptions import PersistenceError
from orgmanage.config import settings
from orgmanage.realtime.broker import ChangeBroker, StreamStatus, Subscription
from orgmanage.realtime.events import ChangeEvent, Collection
from orgmanage.realtime.view import CollectionView

logger = logging.getLogger(__name__)

Fetcher = Callable[[Collection, Optional[uuid.UUID]], Awaitable[list[dict[str, Any]]]]
OnChange = Callable[[CollectionView, Optional[ChangeEvent]], Awaitable[None]]

# Queue marker asking the consumer for a full refetch.
_RESYNC = object()


class BridgeSubscription:
    """A live view of one collection, optionally scoped to one owner."""

    def __init__(
        self,
        bridge: "SyncBridge",
        collection: Collection,
        owner_id: Optional[uuid.UUID],
        on_change: Optional[OnChange],
    ) -> None:
        self._bridge = bridge
        self.collection = collection
        self.owner_id = owner_id
        self.view = CollectionView()
        self._on_change = on_change
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=bridge.queue_size)
        self._broker_sub: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self._overflowed = False
        self.closed = False

    # ── Broker callbacks (enqueue only) ─────────────────────────────

    def _enqueue(self, item: object) -> None:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            logger.warning(
                "Realtime queue full for %s; scheduling a full refetch",
                self.collection.value,
            )
            self._overflowed = True

    def _on_event(self, event: ChangeEvent) -> None:
        self._enqueue(event)

    def _on_status(self, status: StreamStatus) -> None:
        if status is StreamStatus.reconnected:
            self._enqueue(_RESYNC)

    # ── Lifecycle ───────────────────────────────────────────────────

    async def _start(self) -> None:
        # Register before the initial fetch so nothing committed in between is lost.
        self._broker_sub = self._bridge.broker.subscribe(
            self.collection,
            self._on_event,
            owner_id=self.owner_id,
            on_status=self._on_status,
        )
        try:
            await self.refetch()
        except BaseException:
            self._broker_sub.unsubscribe()
            raise
        self._task = asyncio.create_task(
            self._consume(), name=f"realtime:{self.collection.value}",
        )

    async def refetch(self) -> bool:
        """Replace the view with a fresh snapshot. Keeps the old view on failure."""
        try:
            rows = await asyncio.wait_for(
                self._bridge.fetcher(self.collection, self.owner_id),
                timeout=self._bridge.timeout,
            )
        except (asyncio.TimeoutError, PersistenceError, SQLAlchemyError) as exc:
            logger.warning(
                "Refetch of %s failed, keeping %d cached rows: %r",
                self.collection.value, len(self.view), exc,
            )
            return False
        self.view.replace_all(rows)
        return True

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            resync = item is _RESYNC or self._overflowed
            try:
                if resync:
                    self._overflowed = False
                    event = None
                    changed = await self.refetch()
                else:
                    event = item
                    changed = self.view.apply(item)
                if changed and self._on_change is not None:
                    try:
                        await self._on_change(self.view, event)
                    except Exception:
                        logger.exception(
                            "on_change callback failed for %s", self.collection.value,
                        )
            except Exception:
                logger.exception(
                    "Realtime item for %s could not be applied", self.collection.value,
                )
                # A bad event leaves the view suspect; the next pass rebuilds it.
                if not resync:
                    self._enqueue(_RESYNC)
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    async def unsubscribe(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._broker_sub is not None:
            self._broker_sub.unsubscribe()
        self._bridge._discard(self)
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class SyncBridge:
    """Creates and tracks :class:`BridgeSubscription` objects."""

    def __init__(
        self,
        broker: ChangeBroker,
        fetcher: Fetcher,
        timeout: Optional[float] = None,
        queue_size: Optional[int] = None,
    ) -> None:
        self.broker = broker
        self.fetcher = fetcher
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.queue_size = queue_size if queue_size is not None else settings.REALTIME_QUEUE_SIZE
        self._subscriptions: set[BridgeSubscription] = set()

    async def subscribe(
        self,
        collection: Collection,
        *,
        owner_id: Optional[uuid.UUID] = None,
        on_change: Optional[OnChange] = None,
    ) -> BridgeSubscription:
        sub = BridgeSubscription(self, Collection(collection), owner_id, on_change)
        await sub._start()
        self._subscriptions.add(sub)
        return sub

    def _discard(self, sub: BridgeSubscription) -> None:
        self._subscriptions.discard(sub)

    @property
    def active_count(self) -> int:
        return len(self._subscriptions)

    async def aclose(self) -> None:
        for sub in list(self._subscriptions):
            await sub.unsubscribe()
