import logging
from unittest.mock import Mock

import pytest

from roster.api.records import RecordService
from roster.auth.session import SessionStore
from roster.domain.models import BatchDeleteFailure, BatchDeleteResult, PendingId, ServerId
from roster.errors import RecordNotFoundError, RemoteError, TransportError
from roster.errors.handler import ErrorHandler
from roster.events.bus import EventBus
from roster.events.roster_events import MutationCommittedEvent, MutationRolledBackEvent
from roster.gui.controllers.mutation_coordinator import MutationCoordinator
from roster.gui.controllers.status_messages import MessageLevel, StatusMessageController
from roster.state.roster_state import RosterState

NEW_STUDENT = {"name": "Ana", "email": "ana@example.edu", "program": "CS", "grade": "9"}


@pytest.fixture
def state(records_factory):
    state = RosterState(page_size=10)
    state.cache.replace([records_factory(i) for i in range(1, 6)])
    return state


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def messages(qtbot):
    return StatusMessageController(timeout_ms=60_000)


@pytest.fixture
def reload():
    return Mock()


@pytest.fixture
def coordinator(state, dispatcher, messages, reload, bus):
    handler = ErrorHandler(logging.getLogger("tests.mutations"), bus)
    handler.register_ui_callback(messages.show_error)
    return MutationCoordinator(
        state,
        Mock(spec=RecordService),
        dispatcher,
        messages,
        reload=reload,
        error_handler=handler,
        event_bus=bus,
    )


OPERATIONS = {
    "create": lambda c: c.create(NEW_STUDENT),
    "update": lambda c: c.update(3, {"name": "Changed", "grade": "2"}),
    "delete": lambda c: c.delete(2),
    "batch_delete": lambda c: c.batch_delete([2, 4]),
}

FAILURES = [
    (TransportError("timed out"), "Connection error: timed out"),
    (RemoteError("Internal server error", status_code=500), "Internal server error"),
    (RemoteError("Email already registered", status_code=200), "Email already registered"),
    (RecordNotFoundError("Student not found", status_code=404), "Student not found"),
]


@pytest.mark.parametrize("operation", list(OPERATIONS))
@pytest.mark.parametrize("error,expected_text", FAILURES)
def test_failed_mutation_restores_cache(
    coordinator, state, dispatcher, messages, reload, operation, error, expected_text
):
    before = state.cache.records

    mutation = OPERATIONS[operation](coordinator)
    assert mutation is not None
    assert state.cache.records != before

    dispatcher.fail(dispatcher.only(f"{operation}:"), error)

    assert state.cache.records == before
    assert not coordinator.has_pending()
    reload.assert_not_called()
    assert messages.current.text == expected_text
    assert messages.current.level is MessageLevel.ERROR


def test_create_shows_placeholder_first(coordinator, state, dispatcher, messages):
    started = []
    coordinator.mutationStarted.connect(started.append)

    mutation = coordinator.create(NEW_STUDENT)

    head = state.cache.records[0]
    assert isinstance(head.id, PendingId)
    assert head.name == "Ana"
    assert len(state.cache) == 6
    assert started == [mutation]
    assert messages.current.text == "Creating student..."
    assert dispatcher.call_of("create:1").args[0]["name"] == "Ana"


def test_create_commit_reports_success_and_reloads(coordinator, dispatcher, messages, reload, bus):
    committed = []
    bus.subscribe(MutationCommittedEvent, committed.append)

    coordinator.create(NEW_STUDENT)
    dispatcher.succeed("create:1", "Student created successfully")

    assert messages.current.text == "Student created successfully"
    assert messages.current.level is MessageLevel.SUCCESS
    assert not coordinator.has_pending()
    reload.assert_called_once_with()
    assert committed[0].kind == "create"


@pytest.mark.parametrize(
    "operation,expected",
    [
        ("update", "Student updated successfully"),
        ("delete", "Student deleted successfully"),
    ],
)
def test_commit_messages(coordinator, dispatcher, messages, reload, operation, expected):
    OPERATIONS[operation](coordinator)
    dispatcher.succeed(dispatcher.only(f"{operation}:"), "ok")

    assert messages.current.text == expected
    reload.assert_called_once_with()


def test_update_patches_row_in_place(coordinator, state, dispatcher):
    coordinator.update(3, {"name": "Changed"})

    assert state.cache.index_of(ServerId(3)) == 2
    assert state.cache.get(ServerId(3)).name == "Changed"
    target, fields = dispatcher.call_of("update:1").args
    assert target == 3
    assert fields == {"name": "Changed"}


def test_batch_delete_partial_success(coordinator, state, dispatcher, messages, reload, caplog):
    coordinator.batch_delete([1, 2, 999])
    assert dispatcher.call_of("batch_delete:1").args == ([1, 2, 999],)
    assert ServerId(1) not in state.cache

    result = BatchDeleteResult(
        deleted=2,
        deleted_ids=(1, 2),
        errors=(BatchDeleteFailure(id=999, error="Student not found"),),
    )
    dispatcher.succeed("batch_delete:1", result)

    assert messages.current.text == "2 student(s) deleted successfully"
    assert "999" in caplog.text
    reload.assert_called_once_with()


def test_batch_delete_uses_selection(coordinator, state, dispatcher):
    state.selection.toggle(ServerId(4), True)
    state.selection.toggle(ServerId(2), True)

    coordinator.batch_delete()

    assert dispatcher.call_of("batch_delete:1").args == ([2, 4],)
    assert state.selection.count == 0


def test_empty_selection_is_rejected_locally(coordinator, state, dispatcher, messages):
    before = state.cache.records

    assert coordinator.batch_delete() is None

    assert dispatcher.submitted == []
    assert state.cache.records == before
    assert messages.current.text == "No students selected"
    assert messages.current.level is MessageLevel.WARNING


def test_batch_delete_requires_admin(qtbot, state, dispatcher, messages):
    session = Mock(spec=SessionStore)
    session.is_admin.return_value = False
    coordinator = MutationCoordinator(
        state, Mock(spec=RecordService), dispatcher, messages, session=session
    )

    assert coordinator.batch_delete([1, 2]) is None

    assert dispatcher.submitted == []
    assert messages.current.text == "Only administrators can delete several students at once"


def test_declined_confirmation_changes_nothing(coordinator, state, dispatcher):
    questions = []

    def decline(question):
        questions.append(question)
        return False

    coordinator.set_confirm_callback(decline)
    before = state.cache.records

    assert coordinator.delete(2) is None
    assert coordinator.batch_delete([1, 3]) is None

    assert questions == [
        "Are you sure you want to delete this student?",
        "Are you sure you want to delete 2 student(s)?",
    ]
    assert state.cache.records == before
    assert dispatcher.submitted == []


def test_invalid_create_is_rejected_before_apply(coordinator, state, dispatcher, messages):
    before = state.cache.records

    assert coordinator.create({"name": "", "email": "a@b.c", "program": "CS"}) is None

    assert state.cache.records == before
    assert dispatcher.submitted == []
    assert messages.current.text == "Missing required fields: name"
    assert messages.current.level is MessageLevel.WARNING


def test_pending_row_cannot_be_updated(coordinator, dispatcher, messages):
    assert coordinator.update(PendingId(1), {"name": "x"}) is None
    assert coordinator.delete(PendingId(1)) is None

    assert dispatcher.submitted == []
    assert messages.current.text == "This student is still being saved"


def test_overlapping_updates_roll_back_to_original(coordinator, state, dispatcher):
    before = state.cache.records

    coordinator.update(3, {"name": "First"})
    coordinator.update(3, {"name": "Second"})
    assert state.cache.get(ServerId(3)).name == "Second"

    dispatcher.fail("update:1", TransportError("offline"))
    dispatcher.fail("update:2", TransportError("offline"))

    assert state.cache.records == before
    assert not coordinator.has_pending()


def test_rollback_skipped_after_authoritative_reload(coordinator, state, dispatcher, records_factory):
    coordinator.delete(2)
    reloaded = (records_factory(1), records_factory(3), records_factory(6))
    state.cache.replace(reloaded)

    dispatcher.fail("delete:1", TransportError("offline"))

    assert state.cache.records == reloaded
    assert not coordinator.has_pending()


def test_rollback_publishes_event_and_signal(coordinator, dispatcher, bus):
    events = []
    signals = []
    bus.subscribe(MutationRolledBackEvent, events.append)
    coordinator.mutationRolledBack.connect(signals.append)

    mutation = coordinator.delete(5)
    dispatcher.fail("delete:1", RemoteError("Cannot delete", status_code=409))

    assert signals == [mutation]
    assert events[0].kind == "delete"
    assert events[0].record_ids == ("5",)
    assert events[0].reason == "Cannot delete"


def test_failure_without_error_handler_shows_message(qtbot, state, dispatcher, messages):
    coordinator = MutationCoordinator(state, Mock(spec=RecordService), dispatcher, messages)

    coordinator.update(1, {"program": "Math"})
    dispatcher.fail("update:1", RemoteError("Update rejected", status_code=422))

    assert messages.current.text == "Update rejected"
    assert messages.current.level is MessageLevel.ERROR
