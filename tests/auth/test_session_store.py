import json

import pytest

from roster.auth.session import SessionStore
from roster.domain.models import AuthUser
from roster.errors import SessionExpiredError


class _Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def store(tmp_path, clock):
    return SessionStore(tmp_path / "session.json", clock=clock)


def test_save_persists_token_user_and_login_time(store, clock, tmp_path):
    store.save("tok", AuthUser(id=1, username="root", role="admin"))

    payload = json.loads((tmp_path / "session.json").read_text(encoding="utf-8"))
    assert payload["token"] == "tok"
    assert payload["user"]["username"] == "root"
    assert payload["logged_in_at"] == clock.now

    reopened = SessionStore(tmp_path / "session.json", clock=clock)
    assert reopened.token() == "tok"
    assert reopened.is_admin()
    assert reopened.auth_headers() == {"Authorization": "Bearer tok"}


def test_session_expires_after_two_hours(store, clock, tmp_path):
    store.save("tok", AuthUser(id=2, username="ana", role="student"))

    clock.now += 2 * 60 * 60
    assert store.is_authenticated()

    clock.now += 1
    assert not store.is_authenticated()
    assert not (tmp_path / "session.json").exists()
    with pytest.raises(SessionExpiredError):
        store.require_auth()


def test_student_is_not_admin(store):
    store.save("tok", AuthUser(id=2, username="ana", role="student"))

    assert store.require_auth().username == "ana"
    assert not store.is_admin()


def test_missing_or_corrupt_file_means_logged_out(tmp_path, clock):
    path = tmp_path / "session.json"
    assert SessionStore(path, clock=clock).token() is None

    path.write_text("{not json", encoding="utf-8")
    store = SessionStore(path, clock=clock)
    assert not store.is_authenticated()
    assert store.auth_headers() == {}
    assert not path.exists()


def test_clear_removes_session(store, tmp_path):
    store.save("tok", AuthUser(id=1, username="root", role="admin"))

    store.clear()

    assert store.user() is None
    assert not (tmp_path / "session.json").exists()
