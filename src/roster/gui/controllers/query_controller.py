"""List loading with stale-response discard."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Mapping, Optional, Set

from PySide6.QtCore import QObject, Signal

from ...api.records import ListResult, RecordService
from ...errors import RemoteError
from ...errors.handler import ErrorHandler, ErrorSeverity
from ...events.bus import EventBus
from ...events.roster_events import RecordsReloadedEvent
from ...state.roster_state import QueryKey, RosterState
from ..background_task_manager import TaskDispatcher

logger = logging.getLogger(__name__)


class QueryController(QObject):
    """Own ``(filters, page)`` and keep the cache in step with the server.

    Every request captures the :class:`QueryKey` and a generation number at
    dispatch.  A response is applied only if its key still equals the
    current key and no newer generation has been applied already;
    otherwise it is dropped.  In-flight requests are never cancelled.
    """

    loadingChanged = Signal(bool)
    recordsReloaded = Signal(int)
    loadFailed = Signal(str)

    def __init__(
        self,
        state: RosterState,
        service: RecordService,
        dispatcher: TaskDispatcher,
        *,
        error_handler: Optional[ErrorHandler] = None,
        event_bus: Optional[EventBus] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._state = state
        self._service = service
        self._dispatcher = dispatcher
        self._error_handler = error_handler
        self._event_bus = event_bus
        self._visible_requests: Set[int] = set()
        self._applied_generation = 0

    @property
    def applied_generation(self) -> int:
        return self._applied_generation

    def is_loading(self) -> bool:
        return bool(self._visible_requests)

    # ------------------------------------------------------------------
    # Query state changes
    # ------------------------------------------------------------------
    def set_filter(self, name: str, value: Any) -> bool:
        """Update one filter and reload page 1 when it actually changed."""
        if not self._state.set_filter(name, value):
            return False
        self.refresh()
        return True

    def apply_filters(self, changes: Mapping[str, Any]) -> bool:
        """Update several filters with a single reload."""
        changed = False
        for name, value in changes.items():
            changed = self._state.set_filter(name, value) or changed
        if changed:
            self.refresh()
        return changed

    def set_page(self, page: int) -> bool:
        """Navigate to *page*; the page is not clamped to the known total."""
        if not self._state.set_page(page):
            return False
        self.refresh()
        return True

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def refresh(self, *, silent: bool = False) -> int:
        """Request the current page; ``silent`` leaves the loading flag alone."""
        key = self._state.query_key()
        generation = self._state.next_generation()
        if not silent:
            self._visible_requests.add(generation)
            self._sync_loading()
        logger.debug("Dispatching list #%d for page %d (silent=%s)", generation, key.page, silent)
        self._dispatcher.submit(
            f"list:{generation}",
            partial(self._service.list_students, key.filters, key.page, key.limit),
            on_finished=partial(self._on_loaded, generation, key, silent),
            on_error=partial(self._on_failed, generation, key, silent),
        )
        return generation

    def _is_stale(self, generation: int, key: QueryKey) -> bool:
        if key != self._state.query_key():
            logger.debug("Discarding list #%d: query changed since dispatch", generation)
            return True
        if generation < self._applied_generation:
            logger.debug(
                "Discarding list #%d: #%d was already applied",
                generation,
                self._applied_generation,
            )
            return True
        return False

    def _on_loaded(self, generation: int, key: QueryKey, silent: bool, result: ListResult) -> None:
        self._finish(generation)
        if self._is_stale(generation, key):
            return
        self._applied_generation = generation
        self._state.pagination = result.pagination
        self._state.list_message.value = "" if result.records else result.message
        self._state.cache.replace(result.records)
        if self._event_bus is not None:
            self._event_bus.publish(
                RecordsReloadedEvent(
                    source="query_controller",
                    generation=generation,
                    page=result.pagination.page,
                    total=result.pagination.total,
                    silent=silent,
                )
            )
        self.recordsReloaded.emit(generation)

    def _on_failed(self, generation: int, key: QueryKey, silent: bool, error: BaseException) -> None:
        self._finish(generation)
        if self._is_stale(generation, key):
            return
        if isinstance(error, RemoteError):
            text = error.message
        else:
            text = f"Connection error: {error}"
        if silent:
            logger.warning("Background refresh failed: %s", text)
            return
        if self._error_handler is not None:
            self._error_handler.handle(
                error,
                ErrorSeverity.ERROR,
                context={"operation": "list", "page": key.page},
                message=text,
            )
        else:
            logger.error("Loading students failed: %s", text)
        self.loadFailed.emit(text)

    def _finish(self, generation: int) -> None:
        if generation in self._visible_requests:
            self._visible_requests.discard(generation)
            self._sync_loading()

    def _sync_loading(self) -> None:
        loading = bool(self._visible_requests)
        if self._state.loading.value != loading:
            self._state.loading.value = loading
            self.loadingChanged.emit(loading)


__all__ = ["QueryController"]
