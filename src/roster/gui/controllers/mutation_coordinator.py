"""Optimistic create, update and delete with rollback on failure."""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, Iterable, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from ...api.records import RecordService
from ...auth.session import SessionStore
from ...domain.models import (
    BatchDeleteResult,
    RecordId,
    ServerId,
    StudentRecord,
    coerce_record_id,
    validate_student_fields,
)
from ...errors import RemoteError, ValidationError
from ...errors.handler import ErrorHandler, ErrorSeverity
from ...events.bus import EventBus
from ...events.roster_events import MutationCommittedEvent, MutationRolledBackEvent
from ...state.roster_state import RosterState
from ...state.transactions import MutationKind, PendingMutation
from ..background_task_manager import TaskDispatcher
from .status_messages import MessageLevel, StatusMessageController

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

_PROGRESS_TEXT = {
    MutationKind.CREATE: "Creating student...",
    MutationKind.UPDATE: "Updating student...",
    MutationKind.DELETE: "Deleting student...",
    MutationKind.BATCH_DELETE: "Deleting students...",
}
_SUCCESS_TEXT = {
    MutationKind.CREATE: "Student created successfully",
    MutationKind.UPDATE: "Student updated successfully",
    MutationKind.DELETE: "Student deleted successfully",
}


class MutationCoordinator(QObject):
    """Run each user mutation as apply, call, then commit or roll back.

    Lifecycle of one mutation:

    1. Local checks (validation, role, confirmation).  A failure here shows
       a warning and touches neither the cache nor the network.
    2. The optimistic edit is applied through the transaction manager, which
       snapshots the affected rows; the cache emits ``changed`` at once.
    3. The remote call is dispatched.
    4. Success commits the transaction and asks for a silent reload so the
       server's ids and totals replace the optimistic view.
    5. Any failure rolls the cache back to the snapshot and reports the
       server message, or ``"Connection error: ..."`` when no response
       arrived.

    ``confirm`` is asked before deletes; when it is ``None`` deletes proceed
    without asking.
    """

    mutationStarted = Signal(object)
    mutationCommitted = Signal(object)
    mutationRolledBack = Signal(object)

    def __init__(
        self,
        state: RosterState,
        service: RecordService,
        dispatcher: TaskDispatcher,
        messages: StatusMessageController,
        *,
        reload: Optional[Callable[[], None]] = None,
        confirm: Optional[ConfirmCallback] = None,
        session: Optional[SessionStore] = None,
        error_handler: Optional[ErrorHandler] = None,
        event_bus: Optional[EventBus] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._state = state
        self._service = service
        self._dispatcher = dispatcher
        self._messages = messages
        self._reload = reload
        self._confirm = confirm
        self._session = session
        self._error_handler = error_handler
        self._event_bus = event_bus

    def set_confirm_callback(self, confirm: Optional[ConfirmCallback]) -> None:
        self._confirm = confirm

    def has_pending(self) -> bool:
        return self._state.transactions.has_pending()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def create(self, fields: Mapping[str, Any]) -> Optional[PendingMutation]:
        try:
            cleaned = validate_student_fields(fields)
        except ValidationError as exc:
            self._reject(exc)
            return None
        record = StudentRecord.pending(cleaned)
        mutation = self._state.transactions.apply_create(record)
        self._dispatch(mutation, partial(self._service.create, cleaned))
        return mutation

    def update(self, record_id: RecordId | int, fields: Mapping[str, Any]) -> Optional[PendingMutation]:
        try:
            target = self._server_id(record_id)
            cleaned = validate_student_fields(fields, partial=True)
        except ValidationError as exc:
            self._reject(exc)
            return None
        mutation = self._state.transactions.apply_update(target, cleaned)
        self._dispatch(mutation, partial(self._service.update, target.value, cleaned))
        return mutation

    def delete(self, record_id: RecordId | int) -> Optional[PendingMutation]:
        try:
            target = self._server_id(record_id)
        except ValidationError as exc:
            self._reject(exc)
            return None
        if not self._confirmed("Are you sure you want to delete this student?"):
            logger.debug("Delete of %s cancelled by the user", target)
            return None
        mutation = self._state.transactions.apply_delete([target])
        self._dispatch(mutation, partial(self._service.delete, target.value))
        return mutation

    def batch_delete(self, record_ids: Optional[Iterable[int]] = None) -> Optional[PendingMutation]:
        """Delete the given ids, or the current selection when omitted."""
        if record_ids is None:
            ids = self._state.selection.selected_server_ids()
        else:
            ids = list(dict.fromkeys(int(value) for value in record_ids))
        if not ids:
            self._reject(ValidationError("No students selected"))
            return None
        if self._session is not None and not self._session.is_admin():
            self._reject(ValidationError("Only administrators can delete several students at once"))
            return None
        if not self._confirmed(f"Are you sure you want to delete {len(ids)} student(s)?"):
            logger.debug("Batch delete of %d record(s) cancelled by the user", len(ids))
            return None
        mutation = self._state.transactions.apply_delete(
            [ServerId(value) for value in ids],
            kind=MutationKind.BATCH_DELETE,
        )
        self._dispatch(mutation, partial(self._service.batch_delete, ids))
        return mutation

    # ------------------------------------------------------------------
    # Dispatch and resolution
    # ------------------------------------------------------------------
    def _dispatch(self, mutation: PendingMutation, call: Callable[[], Any]) -> None:
        self._messages.show(_PROGRESS_TEXT[mutation.kind], MessageLevel.INFO)
        self.mutationStarted.emit(mutation)
        self._dispatcher.submit(
            f"{mutation.kind.value}:{mutation.sequence}",
            call,
            on_finished=partial(self._on_success, mutation),
            on_error=partial(self._on_failure, mutation),
        )

    def _on_success(self, mutation: PendingMutation, result: Any) -> None:
        self._state.transactions.commit(mutation)
        if isinstance(result, BatchDeleteResult):
            text = f"{result.deleted} student(s) deleted successfully"
            for failure in result.errors:
                logger.warning("Batch delete skipped %s: %s", failure.id, failure.error)
        else:
            text = _SUCCESS_TEXT[mutation.kind]
        self._messages.show(text, MessageLevel.SUCCESS)
        if self._event_bus is not None:
            self._event_bus.publish(
                MutationCommittedEvent(
                    source="mutation_coordinator",
                    kind=mutation.kind.value,
                    record_ids=tuple(str(rid) for rid in mutation.record_ids),
                    message=text,
                )
            )
        self.mutationCommitted.emit(mutation)
        if self._reload is not None:
            self._reload()

    def _on_failure(self, mutation: PendingMutation, error: BaseException) -> None:
        self._state.transactions.rollback(mutation)
        if isinstance(error, RemoteError):
            text = error.message
        else:
            text = f"Connection error: {error}"
        if self._error_handler is not None:
            self._error_handler.handle(
                error,
                ErrorSeverity.ERROR,
                context={"operation": mutation.kind.value, "records": [str(r) for r in mutation.record_ids]},
                message=text,
            )
        else:
            logger.error("%s failed: %s", mutation.kind.value, text)
            self._messages.show(text, MessageLevel.ERROR)
        if self._event_bus is not None:
            self._event_bus.publish(
                MutationRolledBackEvent(
                    source="mutation_coordinator",
                    kind=mutation.kind.value,
                    record_ids=tuple(str(rid) for rid in mutation.record_ids),
                    reason=text,
                )
            )
        self.mutationRolledBack.emit(mutation)

    # ------------------------------------------------------------------
    # Local checks
    # ------------------------------------------------------------------
    def _server_id(self, record_id: RecordId | int) -> ServerId:
        target = coerce_record_id(record_id)
        if not isinstance(target, ServerId):
            raise ValidationError("This student is still being saved")
        if self._state.transactions.is_record_pending(target):
            logger.debug("Record %s already has a mutation in flight", target)
        return target

    def _confirmed(self, question: str) -> bool:
        if self._confirm is None:
            return True
        return bool(self._confirm(question))

    def _reject(self, error: ValidationError) -> None:
        logger.info("Rejected locally: %s", error)
        self._messages.show(str(error), MessageLevel.WARNING)


__all__ = ["ConfirmCallback", "MutationCoordinator"]
