"""Transaction management for optimistic record mutations.

Creates, updates and deletes are reflected in the :class:`LocalRecordCache`
immediately while the remote call is still in flight.  Each mutation is a
:class:`PendingMutation` moving through::

    IDLE -> OPTIMISTIC_APPLIED -> (COMMITTING | ROLLING_BACK) -> IDLE

The manager keeps the pre-mutation row of every affected record so a failure
can put the cache back exactly as it was.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from roster.domain.models import RecordId, StudentRecord
from roster.errors import MutationStateError
from roster.state.record_cache import LocalRecordCache

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BATCH_DELETE = "batch_delete"


class MutationState(Enum):
    IDLE = "idle"
    OPTIMISTIC_APPLIED = "optimistic_applied"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"


@dataclass(frozen=True)
class _RowSnapshot:
    """Row position and content before the first optimistic edit.

    ``record`` is ``None`` for rows that did not exist yet (creates).
    """

    index: Optional[int]
    record: Optional[StudentRecord]


@dataclass(eq=False)
class PendingMutation:
    sequence: int
    kind: MutationKind
    record_ids: Tuple[RecordId, ...]
    cache_generation: int
    state: MutationState = MutationState.OPTIMISTIC_APPLIED
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def in_flight(self) -> bool:
        return self.state is MutationState.OPTIMISTIC_APPLIED


class OptimisticTransactionManager:
    """Applies optimistic edits to the cache and commits or rolls them back.

    This class tracks:
    - The original row of each record touched by an unresolved mutation
    - Which unresolved mutations hold each original
    - The cache generation each mutation was applied against

    When a second mutation touches a record that already has one in flight,
    the *first* snapshot is kept, so rollback never restores an intermediate
    optimistic state.  The snapshot is dropped once the last holder resolves.
    An authoritative ``replace`` drops every snapshot, since the server rows
    it installs are what a later mutation must roll back to.
    """

    def __init__(self, cache: LocalRecordCache):
        self._cache = cache
        self._sequence = itertools.count(1)
        self._originals: Dict[RecordId, _RowSnapshot] = {}
        self._holders: Dict[RecordId, Set[int]] = {}
        self._active: Dict[int, PendingMutation] = {}

        cache.replaced.connect(self._on_cache_replaced)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def has_pending(self) -> bool:
        """Return True while any mutation awaits its server response."""
        return bool(self._active)

    def active(self) -> List[PendingMutation]:
        return list(self._active.values())

    def is_record_pending(self, record_id: RecordId) -> bool:
        return bool(self._holders.get(record_id))

    def original_of(self, record_id: RecordId) -> Optional[StudentRecord]:
        snapshot = self._originals.get(record_id)
        return snapshot.record if snapshot else None

    # ------------------------------------------------------------------
    # Optimistic application
    # ------------------------------------------------------------------
    def apply_create(self, record: StudentRecord) -> PendingMutation:
        mutation = self._begin(MutationKind.CREATE, (record.id,))
        self._snapshot(mutation, [record.id])
        self._cache.insert_front(record)
        return mutation

    def apply_update(self, record_id: RecordId, changes: Mapping[str, Any]) -> PendingMutation:
        mutation = self._begin(MutationKind.UPDATE, (record_id,), payload=dict(changes))
        self._snapshot(mutation, [record_id])
        if not self._cache.patch(record_id, changes):
            logger.debug("Update target %s is not cached; nothing to patch", record_id)
        return mutation

    def apply_delete(
        self,
        record_ids: Iterable[RecordId],
        *,
        kind: MutationKind = MutationKind.DELETE,
    ) -> PendingMutation:
        ids = tuple(dict.fromkeys(record_ids))
        mutation = self._begin(kind, ids)
        self._snapshot(mutation, ids)
        self._cache.remove_many(ids)
        return mutation

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def commit(self, mutation: PendingMutation) -> None:
        """Accept the optimistic edit; the snapshot is no longer needed."""
        self._ensure_in_flight(mutation)
        mutation.state = MutationState.COMMITTING
        self._release(mutation)
        mutation.state = MutationState.IDLE
        logger.info("Committed %s #%d for %s", mutation.kind.value, mutation.sequence, _fmt_ids(mutation))

    def rollback(self, mutation: PendingMutation) -> bool:
        """Restore the pre-mutation rows of *mutation*.

        Returns ``False`` when nothing was restored because the cache was
        replaced by an authoritative response after the edit was applied;
        that response already reflects the server state the failed mutation
        never changed.
        """
        self._ensure_in_flight(mutation)
        mutation.state = MutationState.ROLLING_BACK
        restored = False
        try:
            if self._cache.generation != mutation.cache_generation:
                logger.debug(
                    "Skipping rollback of %s #%d: cache reloaded since it was applied",
                    mutation.kind.value,
                    mutation.sequence,
                )
            else:
                restored = self._restore(mutation)
        finally:
            self._release(mutation)
            mutation.state = MutationState.IDLE
        logger.info("Rolled back %s #%d for %s", mutation.kind.value, mutation.sequence, _fmt_ids(mutation))
        return restored

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _begin(
        self,
        kind: MutationKind,
        record_ids: Tuple[RecordId, ...],
        payload: Optional[Dict[str, Any]] = None,
    ) -> PendingMutation:
        mutation = PendingMutation(
            sequence=next(self._sequence),
            kind=kind,
            record_ids=record_ids,
            cache_generation=self._cache.generation,
            payload=payload or {},
        )
        self._active[mutation.sequence] = mutation
        return mutation

    def _snapshot(self, mutation: PendingMutation, record_ids: Iterable[RecordId]) -> None:
        for record_id in record_ids:
            holders = self._holders.setdefault(record_id, set())
            if record_id not in self._originals:
                self._originals[record_id] = _RowSnapshot(
                    index=self._cache.index_of(record_id),
                    record=self._cache.get(record_id),
                )
            elif holders:
                logger.debug(
                    "Record %s already has a mutation in flight; keeping its original snapshot",
                    record_id,
                )
            holders.add(mutation.sequence)

    def _restore(self, mutation: PendingMutation) -> bool:
        snapshots = [
            (record_id, self._originals[record_id])
            for record_id in mutation.record_ids
            if record_id in self._originals
        ]
        # Re-inserting in ascending original position reproduces the
        # pre-mutation order for every row removed by this mutation.
        snapshots.sort(key=lambda item: -1 if item[1].index is None else item[1].index)
        with self._cache.changed.blocked():
            for record_id, snapshot in snapshots:
                if snapshot.record is None:
                    self._cache.remove(record_id)
                elif record_id in self._cache:
                    self._cache.put(snapshot.record)
                elif snapshot.index is not None:
                    self._cache.insert(snapshot.index, snapshot.record)
        self._cache.changed.emit(self._cache.records)
        return bool(snapshots)

    def _on_cache_replaced(self, _records) -> None:
        # Rows from before a reload must never be restored over server data;
        # the next mutation on a record snapshots the reloaded row instead.
        if self._originals:
            logger.debug("Cache reloaded; dropping %d pre-mutation snapshot(s)", len(self._originals))
            self._originals.clear()

    def _release(self, mutation: PendingMutation) -> None:
        self._active.pop(mutation.sequence, None)
        for record_id in mutation.record_ids:
            holders = self._holders.get(record_id)
            if holders is None:
                continue
            holders.discard(mutation.sequence)
            if not holders:
                self._holders.pop(record_id, None)
                self._originals.pop(record_id, None)

    def _ensure_in_flight(self, mutation: PendingMutation) -> None:
        if not mutation.in_flight or mutation.sequence not in self._active:
            raise MutationStateError(
                f"{mutation.kind.value} #{mutation.sequence} was already resolved"
            )


def _fmt_ids(mutation: PendingMutation) -> str:
    return ", ".join(str(record_id) for record_id in mutation.record_ids) or "-"
