"""Explicit state owned by one roster controller instance.

Current page, filters, the edit target and the record cache used to be
ambient globals in the view script.  Keeping them on one object lets the
controllers share state without a view and lets tests build it in isolation.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Optional

from roster.config import PAGE_SIZE
from roster.domain.models import FilterSet, RecordId, RosterStatistics
from roster.state.pagination import PageDescriptor
from roster.state.record_cache import LocalRecordCache
from roster.state.selection import SelectionTracker
from roster.state.signal import ObservableProperty
from roster.state.transactions import OptimisticTransactionManager


@dataclass(frozen=True)
class QueryKey:
    """The ``(filters, page)`` pair a list request was issued for."""

    filters: FilterSet
    page: int
    limit: int


class RosterState:
    def __init__(self, page_size: int = PAGE_SIZE) -> None:
        self.page_size = page_size
        self.filters = FilterSet()
        self.pagination = PageDescriptor(page=1, limit=page_size)

        self.cache = LocalRecordCache()
        self.selection = SelectionTracker(self.cache)
        self.transactions = OptimisticTransactionManager(self.cache)

        self.loading = ObservableProperty(False)
        self.list_message = ObservableProperty("")
        self.editing_id = ObservableProperty(None)
        self.statistics = ObservableProperty(RosterStatistics())

        self._generations = itertools.count(1)

    @property
    def page(self) -> int:
        return self.pagination.page

    def query_key(self) -> QueryKey:
        return QueryKey(filters=self.filters, page=self.pagination.page, limit=self.page_size)

    def next_generation(self) -> int:
        return next(self._generations)

    def set_filter(self, name: str, value: Any) -> bool:
        """Change one filter; any effective change sends the view back to page 1."""
        updated = self.filters.with_filter(name, value)
        if updated == self.filters:
            return False
        self.filters = updated
        self.pagination = self.pagination.with_page(1)
        return True

    def set_page(self, page: int) -> bool:
        if page == self.pagination.page:
            return False
        self.pagination = self.pagination.with_page(page)
        return True

    @property
    def is_editing(self) -> bool:
        return self.editing_id.value is not None

    def edit_target(self) -> Optional[RecordId]:
        return self.editing_id.value
