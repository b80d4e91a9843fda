import logging

import pytest

from sqlsls.messenger import Messenger


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, method, params):
        self.calls.append((method, params))
        return len(self.calls)


@pytest.mark.parametrize(
    "name, kind",
    [
        ("show_error", 1),
        ("show_warning", 2),
        ("show_info", 3),
        ("show_log", 4),
    ],
)
def test_messages_are_sent_with_their_type(name, kind):
    recorder = _Recorder()
    messenger = Messenger(recorder)
    getattr(messenger, name)("no database connection")
    assert recorder.calls == [
        (
            "window/showMessage",
            {"type": kind, "message": "no database connection"},
        )
    ]


def test_result_of_notify_is_returned():
    recorder = _Recorder()
    messenger = Messenger(recorder)
    messenger.show_info("a")
    assert messenger.show_info("b") == 2


def test_messages_keep_order():
    recorder = _Recorder()
    messenger = Messenger(recorder)
    messenger.show_info("first")
    messenger.show_error("second")
    assert [params["message"] for _, params in recorder.calls] == ["first", "second"]


def test_notify_failure_propagates():
    def failing(method, params):
        raise ConnectionError("closed")

    with pytest.raises(ConnectionError):
        Messenger(failing).show_warning("careful")


def test_message_is_logged(caplog):
    with caplog.at_level(logging.INFO, logger="sqlsls.messenger"):
        Messenger(_Recorder()).show_log("hello")
    assert "Send Message: hello" in caplog.text