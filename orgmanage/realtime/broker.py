"""In-process change broker.

Services call :func:`record_change` inside their unit of work; the event is
held on the database session and published only after the outermost COMMIT,
so subscribers never observe rows that were rolled back.
"""

from __future__ import annotations

import enum
import logging
import uuid
from collections import defaultdict
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.database import on_commit
from orgmanage.realtime.events import ChangeEvent, ChangeType, Collection

logger = logging.getLogger(__name__)


class StreamStatus(str, enum.Enum):
    disconnected = "disconnected"
    reconnected = "reconnected"


ChangeHandler = Callable[[ChangeEvent], None]
StatusHandler = Callable[[StreamStatus], None]


class Subscription:
    """A filtered listener registered on the broker."""

    def __init__(
        self,
        broker: "ChangeBroker",
        collection: Collection,
        handler: ChangeHandler,
        events: Optional[frozenset[ChangeType]],
        owner_id: Optional[uuid.UUID],
        on_status: Optional[StatusHandler],
    ) -> None:
        self._broker = broker
        self.collection = collection
        self.handler = handler
        self.events = events
        self.owner_id = owner_id
        self.on_status = on_status
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if event.collection != self.collection:
            return False
        if self.events is not None and event.type not in self.events:
            return False
        if self.owner_id is not None and event.owner_id != self.owner_id:
            return False
        return True

    def unsubscribe(self) -> None:
        """Release the listener. Takes effect before this call returns."""
        if self.active:
            self.active = False
            self._broker._remove(self)


class ChangeBroker:
    """Fan-out of committed change events to filtered subscribers."""

    def __init__(self) -> None:
        self._subscriptions: dict[Collection, list[Subscription]] = defaultdict(list)
        self.connected = True

    def subscribe(
        self,
        collection: Collection,
        handler: ChangeHandler,
        *,
        events: Optional[Iterable[ChangeType]] = None,
        owner_id: Optional[uuid.UUID] = None,
        on_status: Optional[StatusHandler] = None,
    ) -> Subscription:
        sub = Subscription(
            self,
            Collection(collection),
            handler,
            frozenset(events) if events is not None else None,
            owner_id,
            on_status,
        )
        self._subscriptions[sub.collection].append(sub)
        logger.debug("Subscribed to %s (owner=%s)", sub.collection.value, owner_id)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.collection, [])
        if sub in subs:
            subs.remove(sub)
            logger.debug("Unsubscribed from %s", sub.collection.value)

    def subscriber_count(self, collection: Optional[Collection] = None) -> int:
        if collection is not None:
            return len(self._subscriptions.get(Collection(collection), []))
        return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, event: ChangeEvent) -> None:
        if not self.connected:
            logger.debug(
                "Stream disconnected, dropping %s on %s",
                event.type.value, event.collection.value,
            )
            return
        for sub in list(self._subscriptions.get(event.collection, [])):
            if sub.active and sub.matches(event):
                try:
                    sub.handler(event)
                except Exception:
                    logger.exception(
                        "Change handler failed for %s", event.collection.value,
                    )

    # ── Connection state ────────────────────────────────────────────

    def disconnect(self) -> None:
        """Mark the stream as down. Events published meanwhile are lost."""
        self.connected = False
        logger.info("Change stream disconnected")
        self._broadcast_status(StreamStatus.disconnected)

    def reconnect(self) -> None:
        """Bring the stream back; subscribers are told to resynchronise."""
        self.connected = True
        logger.info("Change stream reconnected")
        self._broadcast_status(StreamStatus.reconnected)

    def _broadcast_status(self, status: StreamStatus) -> None:
        for subs in list(self._subscriptions.values()):
            for sub in list(subs):
                if sub.active and sub.on_status is not None:
                    sub.on_status(status)


change_broker = ChangeBroker()


def record_change(
    db: AsyncSession,
    collection: Collection,
    change_type: ChangeType,
    record: dict[str, Any],
    owner_id: Optional[uuid.UUID] = None,
    broker: Optional[ChangeBroker] = None,
) -> None:
    """Queue a change event to be published once *db* commits."""
    target = broker or change_broker

    def _publish() -> None:
        target.publish(
            ChangeEvent(
                collection=collection,
                type=change_type,
                record=record,
                owner_id=owner_id,
            ),
        )

    on_commit(db, _publish)
