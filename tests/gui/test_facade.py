from unittest.mock import Mock

import pytest

from roster.api.auth import AuthService
from roster.api.records import ListResult, RecordService
from roster.auth.session import SessionStore
from roster.domain.models import AuthUser, PendingId, ServerId
from roster.errors import AuthenticationError, SessionExpiredError, TransportError
from roster.gui.controllers.status_messages import MessageLevel
from roster.gui.facade import RosterFacade
from roster.state.pagination import PageDescriptor, total_pages_for

NEW_STUDENT = {"name": "Ana", "email": "ana@example.edu", "program": "CS"}


def _page(records, *, page=1, total=None):
    total = len(records) if total is None else total
    return ListResult(
        tuple(records),
        PageDescriptor(page=page, limit=10, total=total, total_pages=total_pages_for(total, 10)),
    )


@pytest.fixture
def session(tmp_path):
    store = SessionStore(tmp_path / "session.json")
    store.save("token-1", AuthUser(id=1, username="admin", role="admin"))
    return store


@pytest.fixture
def auth():
    return Mock(spec=AuthService)


@pytest.fixture
def facade(qtbot, session, auth, dispatcher):
    facade = RosterFacade(
        Mock(spec=RecordService),
        session,
        auth=auth,
        dispatcher=dispatcher,
        page_size=10,
        poll_interval_ms=60_000,
        debounce_ms=50,
        message_timeout_ms=60_000,
    )
    yield facade
    facade.teardown()


@pytest.fixture
def loaded(facade, dispatcher, records_factory):
    facade.start()
    dispatcher.succeed("list:1", _page([records_factory(i) for i in range(1, 4)], total=3))
    dispatcher.succeed("statistics:1", facade.current_statistics)
    return facade


def test_start_requires_session(qtbot, tmp_path, dispatcher):
    facade = RosterFacade(
        Mock(spec=RecordService), SessionStore(tmp_path / "missing.json"), dispatcher=dispatcher
    )

    with pytest.raises(SessionExpiredError):
        facade.start()

    assert dispatcher.submitted == []
    assert not facade.poller.is_running()


def test_start_loads_page_and_statistics(facade, dispatcher):
    facade.start()

    assert dispatcher.submitted == ["list:1", "statistics:1"]
    assert facade.is_started
    assert facade.poller.is_running()
    assert facade.state.loading.value is True

    facade.teardown()
    assert not facade.poller.is_running()
    assert not facade.is_started


def test_create_shows_placeholder_then_server_row(loaded, dispatcher, records_factory):
    cleared = []
    loaded.formCleared.connect(lambda: cleared.append(True))

    loaded.submit_form(NEW_STUDENT)
    assert isinstance(loaded.records[0].id, PendingId)
    assert loaded.records[0].name == "Ana"

    dispatcher.succeed("create:1", "Student created successfully")
    assert cleared == [True]
    assert dispatcher.find("list:") == ["list:2"]
    assert dispatcher.find("statistics:") == ["statistics:2"]
    assert loaded.state.loading.value is False

    server_rows = [records_factory(10, "Ana")] + [records_factory(i) for i in range(1, 4)]
    dispatcher.succeed("list:2", _page(server_rows, total=4))

    assert loaded.records[0].id == ServerId(10)
    assert loaded.record_count == 4


def test_search_input_is_debounced(facade, dispatcher, qtbot):
    for text in ("a", "ab", "abc"):
        facade.search_text_changed(text)
    assert dispatcher.submitted == []

    qtbot.waitUntil(lambda: bool(dispatcher.find("list:")), timeout=2000)
    qtbot.wait(100)

    task_id = dispatcher.only("list:")
    assert dispatcher.call_of(task_id).args[0].search == "abc"


def test_poll_defers_while_mutation_in_flight(loaded, dispatcher):
    loaded.delete(2)
    assert loaded.poller.tick() is False
    assert dispatcher.find("list:") == []

    dispatcher.succeed("delete:1", "Student deleted successfully")
    dispatcher.succeed("list:2", _page([]))
    assert loaded.poller.tick() is True
    assert dispatcher.find("list:") == ["list:3"]


def test_poll_defers_while_search_pending(loaded, dispatcher):
    loaded.search_text_changed("an")

    assert loaded.poller.tick() is False
    assert dispatcher.find("list:") == []


def test_edit_flow_updates_and_clears_form(loaded, dispatcher, records_factory):
    targets = []
    cleared = []
    loaded.editTargetChanged.connect(targets.append)
    loaded.formCleared.connect(lambda: cleared.append(True))

    loaded.begin_edit(2)
    assert dispatcher.call_of("read_one:1").args == (2,)
    record = records_factory(2)
    dispatcher.succeed("read_one:1", record)

    assert targets == [record]
    assert loaded.state.edit_target() == ServerId(2)

    loaded.submit_form({"name": "Renamed"})
    assert loaded.records[1].name == "Renamed"
    dispatcher.succeed("update:1", "Student updated successfully")

    assert loaded.state.edit_target() is None
    assert targets == [record, None]
    assert cleared == [True]
    assert loaded.messages.current.text == "Student updated successfully"


def test_superseded_edit_request_is_ignored(loaded, dispatcher, records_factory):
    loaded.begin_edit(1)
    loaded.begin_edit(3)

    dispatcher.succeed("read_one:1", records_factory(1))
    assert loaded.state.edit_target() is None

    dispatcher.succeed("read_one:2", records_factory(3))
    assert loaded.state.edit_target() == ServerId(3)


def test_pending_row_cannot_be_edited(loaded, dispatcher):
    loaded.submit_form(NEW_STUDENT)

    loaded.begin_edit(loaded.records[0].id)

    assert dispatcher.find("read_one:") == []
    assert loaded.messages.current.text == "This student is still being saved"


def test_rejected_token_signals_session_expired(facade, dispatcher):
    expired = []
    facade.sessionExpired.connect(lambda: expired.append(True))
    facade.start()

    dispatcher.fail("list:1", AuthenticationError("Unauthorized", status_code=401))

    assert expired == [True]
    assert facade.messages.current.text == "Unauthorized"
    assert facade.messages.current.level is MessageLevel.ERROR


def test_logout_clears_session_even_when_remote_fails(loaded, dispatcher, session):
    logged_out = []
    loaded.loggedOut.connect(lambda: logged_out.append(True))

    loaded.logout()
    assert not loaded.poller.is_running()
    dispatcher.fail("logout", TransportError("offline"))

    assert logged_out == [True]
    assert not session.is_authenticated()
    assert loaded.records == ()


def test_batch_action_follows_selection_and_role(loaded, session):
    assert loaded.batch_action_label == "Delete selected (0)"
    assert not loaded.batch_action_enabled

    loaded.toggle_selection(1, True)
    loaded.toggle_selection(3, True)
    assert loaded.batch_action_label == "Delete selected (2)"
    assert loaded.batch_action_enabled

    session.save("token-2", AuthUser(id=2, username="student", role="student"))
    assert not loaded.can_batch_delete
    assert not loaded.batch_action_enabled


def test_select_all_then_batch_delete(loaded, dispatcher):
    loaded.select_all(True)
    loaded.batch_delete()

    assert dispatcher.call_of("batch_delete:1").args == ([1, 2, 3],)
    assert loaded.records == ()


def test_invalid_page_shows_warning(loaded, dispatcher):
    assert loaded.change_page(0) is False

    assert loaded.messages.current.level is MessageLevel.WARNING
    assert dispatcher.find("list:") == []


def test_page_navigation(loaded, dispatcher, records_factory):
    assert loaded.next_page() is False

    loaded.change_page(2)
    dispatcher.succeed("list:2", _page([records_factory(11)], page=2, total=11))
    assert loaded.pagination.has_previous

    assert loaded.previous_page() is True
    assert dispatcher.call_of("list:3").args[1] == 1


def test_clear_filters_reloads_once(loaded, dispatcher):
    loaded.set_status_filter("inactive")
    loaded.set_grade_bounds("6", None)
    dispatcher.succeed("list:2", _page([]))
    dispatcher.succeed("list:3", _page([]))

    assert loaded.clear_filters() is True

    assert dispatcher.find("list:") == ["list:4"]
    assert dispatcher.call_of("list:4").args[0].is_empty()


def test_unknown_status_filter_shows_warning(loaded, dispatcher):
    assert loaded.set_status_filter("expelled") is False

    assert loaded.messages.current.text == "Unknown status 'expelled'"
    assert loaded.messages.current.level is MessageLevel.WARNING
    assert loaded.state.filters.status is None
    assert dispatcher.find("list:") == []
