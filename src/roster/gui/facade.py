"""Qt-aware facade that wires the roster controllers into one surface."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Mapping, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from ..api.auth import AuthService
from ..api.records import RecordService
from ..auth.session import SessionStore
from ..config import MESSAGE_TIMEOUT_MS, PAGE_SIZE, POLL_INTERVAL_MS, SEARCH_DEBOUNCE_MS
from ..domain.models import (
    FILTER_NAMES,
    AuthUser,
    RecordId,
    RosterStatistics,
    ServerId,
    StudentRecord,
    coerce_record_id,
)
from ..errors import AuthenticationError, RemoteError, ValidationError
from ..errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from ..events.bus import EventBus
from ..state.pagination import PageDescriptor
from ..state.roster_state import RosterState
from ..state.transactions import MutationKind, PendingMutation
from .background_task_manager import BackgroundTaskManager, TaskDispatcher
from .controllers import (
    DebounceGate,
    MessageLevel,
    MutationCoordinator,
    PollScheduler,
    QueryController,
    StatisticsController,
    StatusMessageController,
)
from .controllers.mutation_coordinator import ConfirmCallback

logger = logging.getLogger(__name__)


class RosterFacade(QObject):
    """Expose list, filter, edit and delete operations to a view.

    The facade owns one :class:`RosterState` and the controllers that act on
    it.  Views call the methods here and render from the signals; they never
    touch the controllers directly.
    """

    recordsChanged = Signal(object)
    selectionChanged = Signal(object)
    loadingChanged = Signal(bool)
    paginationChanged = Signal(object)
    statisticsChanged = Signal(object)
    messageChanged = Signal(object)
    editTargetChanged = Signal(object)
    formCleared = Signal()
    sessionExpired = Signal()
    loggedOut = Signal()

    def __init__(
        self,
        records: RecordService,
        session: SessionStore,
        *,
        auth: Optional[AuthService] = None,
        dispatcher: Optional[TaskDispatcher] = None,
        event_bus: Optional[EventBus] = None,
        error_handler: Optional[ErrorHandler] = None,
        confirm: Optional[ConfirmCallback] = None,
        page_size: int = PAGE_SIZE,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        message_timeout_ms: int = MESSAGE_TIMEOUT_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._records = records
        self._auth = auth
        self._session = session
        self._dispatcher = dispatcher or BackgroundTaskManager(parent=self)
        self._events = event_bus or EventBus()
        self._errors = error_handler or ErrorHandler(logger, self._events)
        self._started = False
        self._edit_requests = 0

        self.state = RosterState(page_size=page_size)

        self.messages = StatusMessageController(message_timeout_ms, parent=self)
        self._errors.register_ui_callback(self.messages.show_error)
        self._error_subscription = self._events.subscribe(ErrorOccurredEvent, self._on_error_event)

        self.query = QueryController(
            self.state,
            records,
            self._dispatcher,
            error_handler=self._errors,
            event_bus=self._events,
            parent=self,
        )
        self.statistics = StatisticsController(
            self.state,
            records,
            self._dispatcher,
            event_bus=self._events,
            parent=self,
        )
        self.mutations = MutationCoordinator(
            self.state,
            records,
            self._dispatcher,
            self.messages,
            reload=self._reload_silently,
            confirm=confirm,
            session=session,
            error_handler=self._errors,
            event_bus=self._events,
            parent=self,
        )
        self.search_gate = DebounceGate(debounce_ms, parent=self)
        self.search_gate.triggered.connect(self._apply_search)
        self.poller = PollScheduler(
            self._reload_silently,
            interval_ms=poll_interval_ms,
            should_defer=self._poll_deferral_reason,
            parent=self,
        )

        self.state.cache.changed.connect(self.recordsChanged.emit)
        self.state.selection.changed.connect(self.selectionChanged.emit)
        self.query.loadingChanged.connect(self.loadingChanged)
        self.query.recordsReloaded.connect(self._on_records_reloaded)
        self.statistics.statisticsChanged.connect(self.statisticsChanged)
        self.messages.messageChanged.connect(self.messageChanged)
        self.mutations.mutationCommitted.connect(self._on_mutation_committed)

    # ------------------------------------------------------------------
    # Read access for views
    # ------------------------------------------------------------------
    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def records(self) -> Tuple[StudentRecord, ...]:
        return self.state.cache.records

    @property
    def pagination(self) -> PageDescriptor:
        return self.state.pagination

    @property
    def record_count(self) -> int:
        """Total matching students as reported by the server."""
        return self.state.pagination.total

    @property
    def list_message(self) -> str:
        return self.state.list_message.value

    @property
    def current_statistics(self) -> RosterStatistics:
        return self.state.statistics.value

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._session.user()

    @property
    def can_batch_delete(self) -> bool:
        return self._session.is_admin()

    @property
    def batch_action_label(self) -> str:
        return self.state.selection.batch_action_label

    @property
    def batch_action_enabled(self) -> bool:
        return self.can_batch_delete and self.state.selection.batch_action_enabled

    @property
    def is_started(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Load the first page and statistics, then begin polling.

        Raises :class:`SessionExpiredError` when no valid session exists.
        """
        user = self._session.require_auth()
        logger.info("Starting roster view for %s", user.username)
        self._started = True
        self.query.refresh()
        self.statistics.refresh()
        self.poller.start()

    def teardown(self) -> None:
        """Stop every timer; requests already in flight still complete."""
        self.poller.stop()
        self.search_gate.cancel()
        self.messages.clear()
        self._started = False

    def logout(self) -> None:
        """End the session remotely; local state is cleared even on failure."""
        self.teardown()
        if self._auth is None:
            self._finish_logout()
            return
        self._dispatcher.submit(
            "logout",
            self._auth.logout,
            on_finished=lambda _result: self._finish_logout(),
            on_error=self._on_logout_failed,
        )

    def _on_logout_failed(self, error: BaseException) -> None:
        logger.warning("Remote logout failed: %s", error)
        self._finish_logout()

    def _finish_logout(self) -> None:
        self._session.clear()
        self.state.cache.replace(())
        self.state.editing_id.value = None
        self.loggedOut.emit()

    # ------------------------------------------------------------------
    # Query input
    # ------------------------------------------------------------------
    def search_text_changed(self, text: str) -> None:
        self.search_gate.push(text)

    def set_status_filter(self, status: Optional[str]) -> bool:
        return self._change_filters({"status": status})

    def set_program_filter(self, program: Optional[str]) -> bool:
        return self._change_filters({"program": program})

    def set_grade_bounds(self, grade_min: Any = None, grade_max: Any = None) -> bool:
        return self._change_filters({"grade_min": grade_min, "grade_max": grade_max})

    def clear_filters(self) -> bool:
        self.search_gate.cancel()
        return self.query.apply_filters({name: None for name in FILTER_NAMES})

    def change_page(self, page: int) -> bool:
        try:
            return self.query.set_page(page)
        except ValueError as exc:
            self.messages.show(str(exc), MessageLevel.WARNING)
            return False

    def next_page(self) -> bool:
        if not self.state.pagination.has_next:
            return False
        return self.change_page(self.state.page + 1)

    def previous_page(self) -> bool:
        if not self.state.pagination.has_previous:
            return False
        return self.change_page(self.state.page - 1)

    def _apply_search(self, text: Any) -> None:
        self._change_filters({"search": text})

    def _change_filters(self, changes: Mapping[str, Any]) -> bool:
        try:
            return self.query.apply_filters(changes)
        except ValidationError as exc:
            self.messages.show(str(exc), MessageLevel.WARNING)
            return False

    # ------------------------------------------------------------------
    # Edit form
    # ------------------------------------------------------------------
    def begin_edit(self, record_id: RecordId | int) -> None:
        """Fetch the record and switch the form into edit mode on success."""
        target = coerce_record_id(record_id)
        if not isinstance(target, ServerId):
            self.messages.show("This student is still being saved", MessageLevel.WARNING)
            return
        self._edit_requests += 1
        request = self._edit_requests
        self._dispatcher.submit(
            f"read_one:{request}",
            partial(self._records.read_one, target.value),
            on_finished=lambda record: self._on_edit_loaded(request, record),
            on_error=lambda exc: self._on_edit_failed(request, exc),
        )

    def _on_edit_loaded(self, request: int, record: StudentRecord) -> None:
        if request != self._edit_requests:
            logger.debug("Discarding read_one #%d, a newer edit was requested", request)
            return
        self.state.editing_id.value = record.id
        self.editTargetChanged.emit(record)

    def _on_edit_failed(self, request: int, error: BaseException) -> None:
        if request != self._edit_requests:
            return
        text = error.message if isinstance(error, RemoteError) else f"Connection error: {error}"
        self._errors.handle(error, ErrorSeverity.ERROR, context={"operation": "read_one"}, message=text)

    def cancel_edit(self) -> None:
        self._edit_requests += 1
        if self.state.editing_id.value is None:
            return
        self.state.editing_id.value = None
        self.editTargetChanged.emit(None)

    def submit_form(self, fields: Mapping[str, Any]) -> Optional[PendingMutation]:
        target = self.state.edit_target()
        if target is not None:
            return self.mutations.update(target, fields)
        return self.mutations.create(fields)

    # ------------------------------------------------------------------
    # Deletion and selection
    # ------------------------------------------------------------------
    def delete(self, record_id: RecordId | int) -> Optional[PendingMutation]:
        return self.mutations.delete(record_id)

    def batch_delete(self) -> Optional[PendingMutation]:
        return self.mutations.batch_delete()

    def toggle_selection(self, record_id: RecordId | int, checked: bool) -> None:
        self.state.selection.toggle(coerce_record_id(record_id), checked)

    def select_all(self, checked: bool) -> None:
        self.state.selection.set_all(checked)

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _reload_silently(self) -> None:
        self.query.refresh(silent=True)
        self.statistics.refresh()

    def _poll_deferral_reason(self) -> Optional[str]:
        if self.state.transactions.has_pending():
            return "mutation in flight"
        if self.search_gate.is_pending():
            return "search input pending"
        return None

    def _on_records_reloaded(self, _generation: int) -> None:
        self.paginationChanged.emit(self.state.pagination)

    def _on_mutation_committed(self, mutation: PendingMutation) -> None:
        if mutation.kind is MutationKind.CREATE:
            self.formCleared.emit()
        elif mutation.kind is MutationKind.UPDATE:
            self.cancel_edit()
            self.formCleared.emit()

    def _on_error_event(self, event: ErrorOccurredEvent) -> None:
        if isinstance(event.error, AuthenticationError):
            logger.warning("Server rejected the session token")
            self.sessionExpired.emit()


__all__ = ["RosterFacade"]
