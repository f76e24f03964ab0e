from roster.domain.models import StudentStatus
from roster.state.pagination import PageDescriptor
from roster.state.roster_state import QueryKey, RosterState
from roster.state.signal import ObservableProperty, Signal


def test_filter_change_resets_page_to_one():
    state = RosterState(page_size=10)
    state.pagination = PageDescriptor(page=3, limit=10, total=23, total_pages=3)

    assert state.set_filter("status", "graduated") is True

    assert state.page == 1
    assert state.filters.status is StudentStatus.GRADUATED


def test_same_filter_value_is_not_a_change():
    state = RosterState()
    state.set_filter("search", "ana")
    state.set_page(2)

    assert state.set_filter("search", " ana ") is False
    assert state.page == 2


def test_query_key_captures_filters_and_page():
    state = RosterState(page_size=10)
    key = state.query_key()
    state.set_page(2)

    assert key == QueryKey(filters=state.filters, page=1, limit=10)
    assert state.query_key() != key


def test_generations_increase():
    state = RosterState()

    assert state.next_generation() < state.next_generation()


def test_edit_target_tracking():
    state = RosterState()
    assert not state.is_editing

    state.editing_id.value = "x"
    assert state.is_editing
    assert state.edit_target() == "x"


def test_signal_survives_failing_handler():
    signal = Signal()
    seen = []

    def broken(_value):
        raise RuntimeError("boom")

    signal.connect(broken)
    signal.connect(seen.append)
    signal.emit(1)

    assert seen == [1]


def test_signal_blocked_suppresses_emission():
    signal = Signal()
    seen = []
    signal.connect(seen.append)

    with signal.blocked():
        signal.emit(1)
    signal.emit(2)

    assert seen == [2]


def test_observable_property_emits_only_on_change():
    prop = ObservableProperty(1)
    seen = []
    prop.changed.connect(lambda new, old: seen.append((new, old)))

    prop.value = 1
    prop.value = 2

    assert seen == [(2, 1)]
