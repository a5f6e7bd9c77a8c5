import threading

import pytest

from keptninstaller.errors import ConvergenceError
from keptninstaller.models import PollPolicy
from keptninstaller.services.polling import Poller


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


def attempts_returning(*results):
    remaining = list(results)
    calls = []

    def attempt():
        calls.append(len(calls) + 1)
        return remaining.pop(0)

    return attempt, calls


def test_until_returns_first_value():
    attempt, calls = attempts_returning(None, None, "ready")
    poller = Poller(PollPolicy(interval_seconds=0, max_attempts=5), DummyLogger())

    assert poller.until(attempt, "thing") == "ready"
    assert calls == [1, 2, 3]


def test_until_gives_up_after_max_attempts():
    misses = []
    poller = Poller(PollPolicy(interval_seconds=0, max_attempts=3), DummyLogger())

    with pytest.raises(ConvergenceError, match="Gave up waiting for thing after 3 attempts"):
        poller.until(lambda: None, "thing", on_miss=misses.append)

    assert misses == [1, 2, 3]


def test_unbounded_policy_keeps_polling():
    attempt, calls = attempts_returning(*([None] * 50 + ["done"]))
    poller = Poller(PollPolicy(interval_seconds=0, max_attempts=None), DummyLogger())

    assert poller.until(attempt, "thing") == "done"
    assert len(calls) == 51


def test_cancel_event_stops_waiting():
    cancel = threading.Event()
    cancel.set()
    poller = Poller(PollPolicy(interval_seconds=30, max_attempts=None), DummyLogger(), cancel)

    with pytest.raises(ConvergenceError, match="Cancelled while waiting for thing"):
        poller.until(lambda: None, "thing")


def test_wait_first_waits_before_the_first_attempt():
    cancel = threading.Event()
    cancel.set()
    attempt, calls = attempts_returning("ready")
    poller = Poller(PollPolicy(interval_seconds=30), DummyLogger(), cancel)

    with pytest.raises(ConvergenceError):
        poller.until(attempt, "thing", wait_first=True)
    assert calls == []
