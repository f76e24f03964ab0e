from roster.errors.handler import ErrorSeverity
from roster.gui.controllers.status_messages import MessageLevel, StatusMessageController


def test_message_is_dismissed_after_timeout(qtbot):
    messages = StatusMessageController(timeout_ms=40)
    seen = []
    messages.messageChanged.connect(seen.append)

    messages.show("Creating student...", MessageLevel.INFO)
    assert messages.current.text == "Creating student..."

    qtbot.waitUntil(lambda: messages.current is None, timeout=1000)
    assert seen[-1] is None


def test_newer_message_replaces_and_restarts_timer(qtbot):
    messages = StatusMessageController(timeout_ms=300)

    messages.show("first")
    qtbot.wait(150)
    messages.show("second", MessageLevel.SUCCESS)
    qtbot.wait(150)

    assert messages.current.text == "second"
    assert messages.current.level is MessageLevel.SUCCESS
    qtbot.waitUntil(lambda: messages.current is None, timeout=1000)


def test_error_adapter_maps_severity(qtbot):
    messages = StatusMessageController()

    messages.show_error("bad", ErrorSeverity.ERROR)
    assert messages.current.level is MessageLevel.ERROR

    messages.show_error("careful", ErrorSeverity.WARNING)
    assert messages.current.level is MessageLevel.WARNING


def test_default_timeout_is_five_seconds(qtbot):
    messages = StatusMessageController()
    messages.show("x")

    assert messages._timer.interval() == 5_000
