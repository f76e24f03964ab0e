"""Local snapshot of the current page's student records.

The cache is the only store the view reads from.  Every mutator runs
synchronously and emits ``changed`` before returning, so the view renders the
new state before control goes back to the event loop (and before any network
call that may later undo an optimistic edit).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from roster.domain.models import RecordId, StudentRecord
from roster.state.signal import Signal

logger = logging.getLogger(__name__)


class LocalRecordCache:
    """Ordered records keyed by identifier, exactly one record per id."""

    def __init__(self) -> None:
        self._records: List[StudentRecord] = []
        self._row_lookup: Dict[RecordId, int] = {}
        # Bumped on every authoritative ``replace`` so that optimistic
        # transactions can tell whether the server view moved on since they
        # were applied.
        self._generation = 0

        # Emits the full record tuple after any mutation.
        self.changed = Signal()
        # Emits the record tuple after ``replace`` only, before ``changed``.
        self.replaced = Signal()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def records(self) -> Tuple[StudentRecord, ...]:
        return tuple(self._records)

    @property
    def generation(self) -> int:
        return self._generation

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StudentRecord]:
        return iter(tuple(self._records))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._row_lookup

    def ids(self) -> List[RecordId]:
        return [record.id for record in self._records]

    def get(self, record_id: RecordId) -> Optional[StudentRecord]:
        row = self._row_lookup.get(record_id)
        if row is None:
            return None
        return self._records[row]

    def index_of(self, record_id: RecordId) -> Optional[int]:
        return self._row_lookup.get(record_id)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def replace(self, records: Iterable[StudentRecord]) -> None:
        """Swap the full sequence for an authoritative server result."""
        fresh: List[StudentRecord] = []
        seen: set = set()
        for record in records:
            if record.id in seen:
                logger.warning("Dropping duplicate record %s from list response", record.id)
                continue
            seen.add(record.id)
            fresh.append(record)
        self._records = fresh
        self._generation += 1
        self._rebuild_lookup()
        snapshot = self.records
        self.replaced.emit(snapshot)
        self.changed.emit(snapshot)

    def insert_front(self, record: StudentRecord) -> None:
        """Prepend an optimistically created record."""
        self.insert(0, record)

    def insert(self, index: int, record: StudentRecord) -> None:
        if record.id in self._row_lookup:
            raise ValueError(f"Record {record.id} is already cached")
        index = max(0, min(index, len(self._records)))
        self._records.insert(index, record)
        self._rebuild_lookup()
        self.changed.emit(self.records)

    def patch(self, record_id: RecordId, fields: Mapping[str, Any]) -> bool:
        """Merge *fields* into the record matching *record_id*.

        Returns ``False`` without emitting when the record is not cached.
        """
        row = self._row_lookup.get(record_id)
        if row is None:
            return False
        self._records[row] = self._records[row].with_changes(fields)
        self.changed.emit(self.records)
        return True

    def put(self, record: StudentRecord) -> bool:
        """Overwrite the cached record carrying ``record.id`` in place."""
        row = self._row_lookup.get(record.id)
        if row is None:
            return False
        self._records[row] = record
        self.changed.emit(self.records)
        return True

    def remove(self, record_id: RecordId) -> Optional[StudentRecord]:
        removed = self.remove_many([record_id])
        return removed[0] if removed else None

    def remove_many(self, record_ids: Iterable[RecordId]) -> List[StudentRecord]:
        """Drop every cached record whose id is in *record_ids*.

        Ids that are not cached are ignored.  ``changed`` is emitted once, and
        only when something was removed.
        """
        targets = set(record_ids)
        kept: List[StudentRecord] = []
        removed: List[StudentRecord] = []
        for record in self._records:
            (removed if record.id in targets else kept).append(record)
        if not removed:
            return []
        self._records = kept
        self._rebuild_lookup()
        self.changed.emit(self.records)
        return removed

    def _rebuild_lookup(self) -> None:
        self._row_lookup = {record.id: row for row, record in enumerate(self._records)}
