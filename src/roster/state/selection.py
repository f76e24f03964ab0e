"""Checked-row tracking for batch operations."""

from __future__ import annotations

import logging
from typing import FrozenSet, List

from roster.domain.models import RecordId, ServerId
from roster.state.record_cache import LocalRecordCache
from roster.state.signal import Signal

logger = logging.getLogger(__name__)


class SelectionTracker:
    """Set of checked record ids, always a subset of the cached ids.

    Checkbox state belongs to the rendered rows, not to the records, so any
    ``replace`` of the cache clears the selection outright.  Optimistic edits
    that drop rows only prune the ids that disappeared.  Rows carrying a
    pending id cannot be selected: the server does not know them yet.
    """

    def __init__(self, cache: LocalRecordCache) -> None:
        self._cache = cache
        self._selected: set[RecordId] = set()
        self.changed = Signal()

        cache.replaced.connect(self._on_cache_replaced)
        cache.changed.connect(self._on_cache_changed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def selected(self) -> FrozenSet[RecordId]:
        return frozenset(self._selected)

    @property
    def count(self) -> int:
        return len(self._selected)

    def is_selected(self, record_id: RecordId) -> bool:
        return record_id in self._selected

    def selectable_ids(self) -> List[RecordId]:
        return [rid for rid in self._cache.ids() if isinstance(rid, ServerId)]

    @property
    def all_selected(self) -> bool:
        """Aggregate state of the "select all" checkbox."""
        selectable = self.selectable_ids()
        return bool(selectable) and all(rid in self._selected for rid in selectable)

    @property
    def batch_action_enabled(self) -> bool:
        return bool(self._selected)

    @property
    def batch_action_label(self) -> str:
        return f"Delete selected ({len(self._selected)})"

    def selected_server_ids(self) -> List[int]:
        """Selected ids in display order, as the server expects them."""
        return [rid.value for rid in self.selectable_ids() if rid in self._selected]

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def toggle(self, record_id: RecordId, checked: bool) -> None:
        if not isinstance(record_id, ServerId) or record_id not in self._cache:
            logger.debug("Ignoring selection toggle for unselectable row %s", record_id)
            return
        if checked == (record_id in self._selected):
            return
        if checked:
            self._selected.add(record_id)
        else:
            self._selected.discard(record_id)
        self._emit()

    def set_all(self, checked: bool) -> None:
        """Apply the "select all" toggle to every rendered row."""
        target = set(self.selectable_ids()) if checked else set()
        if target == self._selected:
            return
        self._selected = target
        self._emit()

    def clear(self) -> None:
        if self._selected:
            self._selected.clear()
            self._emit()

    # ------------------------------------------------------------------
    # Cache observers
    # ------------------------------------------------------------------
    def _on_cache_replaced(self, _records) -> None:
        self.clear()

    def _on_cache_changed(self, _records) -> None:
        present = {rid for rid in self._selected if rid in self._cache}
        if present != self._selected:
            self._selected = present
            self._emit()

    def _emit(self) -> None:
        self.changed.emit(self.selected)
