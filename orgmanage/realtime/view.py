"""Client-side view of one collection, reconciled from change events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import TypeAdapter

from orgmanage.realtime.events import ChangeEvent, ChangeType

_datetime = TypeAdapter(datetime)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _as_datetime(value: Any) -> datetime:
    if value is None:
        return _EPOCH
    parsed = value if isinstance(value, datetime) else _datetime.validate_python(value)
    # SQLite hands back naive timestamps
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _version(record: dict[str, Any]) -> datetime:
    return _as_datetime(record.get("updated_at") or record.get("created_at"))


def _sort_key(record: dict[str, Any]) -> tuple[datetime, str]:
    return _as_datetime(record.get("created_at")), str(record["id"])


class CollectionView:
    """Rows keyed by id, exposed newest first.

    Applying any permutation of one burst of events yields the same rows a
    full refetch taken after the burst would return. Deleted ids are
    remembered until the next :meth:`replace_all` so a late INSERT or UPDATE
    cannot bring them back.
    """

    def __init__(self, rows: Iterable[dict[str, Any]] = ()) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._tombstones: set[str] = set()
        self.replace_all(rows)

    # ── Reconciliation ──────────────────────────────────────────────

    def apply(self, event: ChangeEvent) -> bool:
        """Apply *event*; return True when the visible rows changed."""
        record_id = event.record_id
        if event.type is ChangeType.DELETE:
            self._tombstones.add(record_id)
            return self._rows.pop(record_id, None) is not None

        if record_id in self._tombstones:
            return False

        current = self._rows.get(record_id)
        if current is not None and _version(event.record) < _version(current):
            return False
        if current == event.record:
            return False
        self._rows[record_id] = dict(event.record)
        return True

    def replace_all(self, rows: Iterable[dict[str, Any]]) -> None:
        self._rows = {str(row["id"]): dict(row) for row in rows}
        self._tombstones.clear()

    # ── Reads ───────────────────────────────────────────────────────

    @property
    def records(self) -> list[dict[str, Any]]:
        return sorted(self._rows.values(), key=_sort_key, reverse=True)

    def get(self, record_id: Any) -> Optional[dict[str, Any]]:
        return self._rows.get(str(record_id))

    def __contains__(self, record_id: object) -> bool:
        return str(record_id) in self._rows

    def __len__(self) -> int:
        return len(self._rows)
